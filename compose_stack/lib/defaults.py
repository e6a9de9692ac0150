"""Default configuration values for the stack.

All hardcoded defaults live here. Every service in the composition is
fully functional with these defaults on a local docker network.

Config hierarchy: .env → environment → these defaults
"""

from typing import Any

# =============================================================================
# Configuration Defaults
# =============================================================================

DEFAULTS: dict[str, Any] = {
    # -------------------------------------------------------------------------
    # Database - MongoDB
    # -------------------------------------------------------------------------
    "MONGO_ROOT_USERNAME": "root",
    "MONGO_ROOT_PASSWORD": "example",
    "MONGO_DATABASE": "appdb",
    "MONGO_HOST": "mongodb",
    "MONGO_PORT": 27017,
    "MONGO_AUTH_SOURCE": "admin",
    "MONGO_URL": "",  # Empty = built from the parts above
    "MONGO_TIMEOUT_MS": 5000,

    # -------------------------------------------------------------------------
    # Readiness Gate
    # -------------------------------------------------------------------------
    "READINESS_GATE": True,
    "READINESS_MAX_RETRIES": 5,
    "READINESS_BASE_DELAY": 0.5,
    "READINESS_MAX_DELAY": 8.0,

    # -------------------------------------------------------------------------
    # Web Service
    # -------------------------------------------------------------------------
    "WEB_HOST": "0.0.0.0",
    "WEB_PORT": 8081,
    "WEB_PUBLISHED_PORT": 8080,

    # -------------------------------------------------------------------------
    # Admin UI (mongo-express)
    # -------------------------------------------------------------------------
    "ADMIN_UI_PUBLISHED_PORT": 8082,

    # -------------------------------------------------------------------------
    # Worker Service
    # -------------------------------------------------------------------------
    "WORKER_TIMEOUT_SECONDS": 30.0,

    # -------------------------------------------------------------------------
    # Smoke Test
    # -------------------------------------------------------------------------
    "SMOKE_COLLECTION": "test",

    # -------------------------------------------------------------------------
    # Observability
    # -------------------------------------------------------------------------
    "LOG_LEVEL": "INFO",
    "OTLP_ENDPOINT": "",  # Empty = tracing disabled
    "ENVIRONMENT": "development",
}


# =============================================================================
# Config Categories (for display)
# =============================================================================

CONFIG_CATEGORIES = {
    "database": [
        "MONGO_ROOT_USERNAME",
        "MONGO_ROOT_PASSWORD",
        "MONGO_DATABASE",
        "MONGO_HOST",
        "MONGO_PORT",
        "MONGO_AUTH_SOURCE",
        "MONGO_URL",
        "MONGO_TIMEOUT_MS",
    ],
    "readiness": [
        "READINESS_GATE",
        "READINESS_MAX_RETRIES",
        "READINESS_BASE_DELAY",
        "READINESS_MAX_DELAY",
    ],
    "web": [
        "WEB_HOST",
        "WEB_PORT",
        "WEB_PUBLISHED_PORT",
    ],
    "admin_ui": [
        "ADMIN_UI_PUBLISHED_PORT",
    ],
    "worker": [
        "WORKER_TIMEOUT_SECONDS",
    ],
    "smoke": [
        "SMOKE_COLLECTION",
    ],
    "observability": [
        "LOG_LEVEL",
        "OTLP_ENDPOINT",
        "ENVIRONMENT",
    ],
}


# =============================================================================
# Sensitive Keys (masked on display)
# =============================================================================

SENSITIVE_KEYS = {
    "MONGO_ROOT_PASSWORD",
    "MONGO_URL",
}


def get_default(key: str) -> Any:
    """Get the default value for a config key.

    Args:
        key: Configuration key name

    Returns:
        Default value, or None if key not found
    """
    return DEFAULTS.get(key)
