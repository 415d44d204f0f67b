"""
API route modules.
"""

from . import admin, firms, health, sync

__all__ = ["admin", "firms", "health", "sync"]
