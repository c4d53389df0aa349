from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import mysql.connector

from ..core.exceptions import ConfigurationError


@dataclass
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str

    @classmethod
    def from_dict(cls, db_config: dict) -> "DBConfig":
        return cls(
            host=str(db_config.get("host", "localhost")),
            port=int(db_config.get("port", 3306)),
            user=str(db_config.get("user", "")),
            password=str(db_config.get("password") or ""),
            database=str(db_config.get("database", "academy_db")),
        )


class DatabaseConnection:
    """Named connection factories.

    "app" connects with the application credentials used on every request
    path. "service" connects with the privileged credentials used for schema
    bootstrap and multi-row transfer application.

    Note: We create short-lived connections per operation (safe for simple Flask apps).
    """

    _instances: dict[str, "DatabaseConnection"] = {}

    def __init__(self, config: DBConfig, *, name: str = "app"):
        self._config = config
        self.name = name

    @classmethod
    def get_instance(cls, config: DBConfig, *, name: str = "app") -> "DatabaseConnection":
        if name not in cls._instances:
            cls._instances[name] = DatabaseConnection(config, name=name)
        return cls._instances[name]

    @classmethod
    def reset(cls) -> None:
        cls._instances.clear()

    def connect(self):
        return mysql.connector.connect(
            host=self._config.host,
            port=int(self._config.port),
            user=self._config.user,
            password=self._config.password,
            database=self._config.database,
        )


def build_service_connection(service_db_config: Optional[dict]) -> DatabaseConnection:
    """Build the privileged connection factory.

    Missing service credentials are a fatal configuration error.
    """

    if not service_db_config or not service_db_config.get("user") or not service_db_config.get("password"):
        raise ConfigurationError("Service database credentials are not configured (DB_SERVICE_USER / DB_SERVICE_PASSWORD)")
    return DatabaseConnection.get_instance(DBConfig.from_dict(service_db_config), name="service")
