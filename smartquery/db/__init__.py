"""Database helpers."""

from .engine import create_sync_engine

__all__ = ["create_sync_engine"]
