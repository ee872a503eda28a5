import os


def get_settings_module() -> str:
    # Environment comes from APP_ENV, defaulting to 'development'
    env = os.getenv("APP_ENV", "development").lower()

    if env in {"prod", "production"}:
        return "crew_ledger.config.production"

    if env in {"test", "testing"}:
        return "crew_ledger.config.testing"

    return "crew_ledger.config.development"
