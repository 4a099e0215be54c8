# Core infrastructure
from learnhub.core.context import (
    clear_context,
    get_context,
    get_request_id,
    get_user_id,
    set_request_id,
    set_user_id,
)
from learnhub.core.database import Base, Database
from learnhub.core.exceptions import AppError, InfrastructureError
from learnhub.core.logging import configure_structlog, get_logger
from learnhub.core.middleware import RequestContextMiddleware
from learnhub.core.registry import PeriodicSweeper, TTLRegistry


__all__ = [
    "AppError",
    "Base",
    "Database",
    "InfrastructureError",
    "PeriodicSweeper",
    "RequestContextMiddleware",
    "TTLRegistry",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_logger",
    "get_request_id",
    "get_user_id",
    "set_request_id",
    "set_user_id",
]
