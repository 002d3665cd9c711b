"""Core utilities for the gateway."""

from apigateway.core.config import Settings, settings
from apigateway.core.http_client import create_http_client
from apigateway.core.logging import get_log_context, get_logger, setup_logging

__all__ = [
    "Settings",
    "settings",
    "create_http_client",
    "get_logger",
    "get_log_context",
    "setup_logging",
]
