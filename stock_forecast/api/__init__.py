"""HTTP API for the stock forecast engine."""

from .server import app, create_app, get_engine

__all__ = ['app', 'create_app', 'get_engine']
