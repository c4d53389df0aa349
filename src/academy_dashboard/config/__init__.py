import os


def get_settings_module() -> str:
    env = os.getenv("APP_ENV", "development").lower()

    if env in {"prod", "production"}:
        return "academy_dashboard.config.production"

    if env in {"test", "testing"}:
        return "academy_dashboard.config.testing"

    return "academy_dashboard.config.development"
