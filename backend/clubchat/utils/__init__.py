"""Utility modules for the application."""
from clubchat.utils.logger import get_logger, safe_repr, setup_logging

__all__ = [
    'get_logger',
    'safe_repr',
    'setup_logging',
]
