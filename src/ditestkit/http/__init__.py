"""HTTP-level services registered by the session extension."""

from .session import FileSession, Session

__all__ = ["Session", "FileSession"]
