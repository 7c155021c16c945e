"""
Runtime configuration read from environment variables.

All settings have development defaults so the service starts with no
environment at all (SQLite file in the working directory).
"""

import os

# Database URL; any SQLAlchemy URL works, SQLite is the local default
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./examgate.db")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Shared secret for the second-chance override (exact match)
SECOND_CHANCE_PASSWORD = os.getenv("SECOND_CHANCE_PASSWORD", "choice2ellen")

# Comma-separated list of allowed origins, "*" for any
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

SERVICE_VERSION = os.getenv("SERVICE_VERSION", "2.0")


def cors_origins_list() -> list:
    """Parse CORS_ORIGINS into a list, falling back to any origin."""
    origins = [o.strip() for o in CORS_ORIGINS.split(",") if o.strip()]
    return origins or ["*"]
