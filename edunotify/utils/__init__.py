"""Utility helpers for reusable functionality."""

from .datetime import (
    ensure_app_naive_datetime,
    ensure_app_timezone,
    get_app_timezone,
    now_in_app_timezone,
    parse_app_datetime,
    start_of_day,
    start_of_month,
    start_of_week,
)

__all__ = [
    "ensure_app_naive_datetime",
    "ensure_app_timezone",
    "get_app_timezone",
    "now_in_app_timezone",
    "parse_app_datetime",
    "start_of_day",
    "start_of_month",
    "start_of_week",
]
