"""Adapters - I/O implementations of ports."""

from .file_store import FileEntryStore
from .msgraph_auth import AuthState, DeviceCodeAuth, Token
from .msgraph_calendar import GraphCalendarAdapter

__all__ = [
    "FileEntryStore",
    "DeviceCodeAuth",
    "AuthState",
    "Token",
    "GraphCalendarAdapter",
]
