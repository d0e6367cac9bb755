"""Shared-secret bearer token check for trigger endpoints."""

import secrets
from typing import Optional

from fastapi import Header, HTTPException, Request, status


def require_update_token(request: Request, authorization: Optional[str] = Header(default=None)) -> None:
    """Require ``Authorization: Bearer <UPDATE_TOKEN>`` (401 otherwise).

    With no token configured every request is refused.
    """
    expected = request.app.state.config.update_token
    token = ""
    if authorization and authorization.startswith("Bearer "):
        token = authorization[len("Bearer "):].strip()

    if not expected or not secrets.compare_digest(token.encode(), expected.encode()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
