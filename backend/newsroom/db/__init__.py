"""Database package."""
from newsroom.db.base import Base
from newsroom.db.session import AsyncSessionLocal, get_session

__all__ = ["Base", "AsyncSessionLocal", "get_session"]
