"""ttt - trivial time tracker with Outlook calendar import."""

__version__ = "0.1.0"
