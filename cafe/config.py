"""Runtime configuration for the cafe core (read from the environment, overridable in tests)."""
import os
from typing import NamedTuple


class ConfigState(NamedTuple):
    database_url: str
    db_timeout: float
    jwt_secret: str
    log_level: str
    recent_order_limit: int
    history_hours: int


def load_from_env() -> ConfigState:
    return ConfigState(
        database_url=os.getenv("DATABASE_URL", "sqlite:///./cafe.db"),
        db_timeout=float(os.getenv("CAFE_DB_TIMEOUT", "5")),
        jwt_secret=os.getenv("JWT_SECRET", "dev-secret"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        recent_order_limit=int(os.getenv("CAFE_RECENT_ORDER_LIMIT", "5")),
        history_hours=int(os.getenv("CAFE_HISTORY_HOURS", "24")),
    )


state = load_from_env()


def override(**values):
    global state
    state = state._replace(**values)


def reset():
    global state
    state = load_from_env()


def get() -> ConfigState:
    return state
