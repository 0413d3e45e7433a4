"""
WebSocket support for the real-time change feed.
"""

from app.websockets.manager import ConnectionManager, get_connection_manager

__all__ = ["ConnectionManager", "get_connection_manager"]
