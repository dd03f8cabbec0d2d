"""FastAPI dependencies."""
from fastapi import Request

from fileshare.services.session import Session


def get_session(request: Request) -> Session:
    """Server-wide session: database as remote store, local file as fallback.

    Routes that act for a user derive a per-user copy with ``for_user``.
    """
    return request.app.state.session
