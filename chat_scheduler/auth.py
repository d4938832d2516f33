"""Bearer-token guard for the session admin API (``/api/sessions``).

Sessions hold lead names, phone numbers and email addresses, so the admin
routes stay closed unless an operator key is configured:

  ADMIN_API_KEY set + matching bearer   → allow
  ADMIN_API_KEY set + wrong/missing     → 401
  ADMIN_API_KEY empty, DEBUG=true       → allow
  ADMIN_API_KEY empty, DEBUG=false      → 403
"""

from __future__ import annotations

import logging
import secrets

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from chat_scheduler.config import settings

log = logging.getLogger("chat_scheduler.auth")

_bearer_scheme = HTTPBearer(auto_error=False)


def _token_matches(credentials: HTTPAuthorizationCredentials | None, key: str) -> bool:
    if credentials is None:
        return False
    return secrets.compare_digest(credentials.credentials.encode(), key.encode())


async def require_admin_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> None:
    """FastAPI dependency guarding the session admin routes."""
    key = settings.admin_api_key

    if not key:
        if settings.debug:
            return
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Session admin API disabled: ADMIN_API_KEY is not set.",
        )

    if not _token_matches(credentials, key):
        client = request.client.host if request.client else "unknown"
        log.warning("Rejected session admin request from %s", client)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing admin token.",
            headers={"WWW-Authenticate": "Bearer"},
        )
