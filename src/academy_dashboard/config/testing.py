import os

SECRET_KEY = "test-secret-key"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "academy_app"),
    "password": os.getenv("DB_PASSWORD", "academy_app"),
    "database": os.getenv("DB_NAME", "academy_test_db"),
}

SERVICE_DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_SERVICE_USER", "root"),
    "password": os.getenv("DB_SERVICE_PASSWORD", "test"),
    "database": os.getenv("DB_NAME", "academy_test_db"),
}

DEBUG = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = False
AUTO_SEED_DB = False

SESSION_DAYS = 7
IDEMPOTENCY_TTL_HOURS = 24
