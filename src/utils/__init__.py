"""Utility functions."""

from src.utils.audit import get_client_ip, log_action
from src.utils.formatting import describe_breakdown, format_money

__all__ = [
    "log_action",
    "get_client_ip",
    "format_money",
    "describe_breakdown",
]
