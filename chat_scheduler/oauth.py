"""Google OAuth authorization-code flow for connecting the bot's calendar.

``GET /setup/google`` redirects the operator to :meth:`GoogleOAuth.authorization_url`;
Google sends them back to ``/auth/google/callback`` where
:meth:`GoogleOAuth.exchange_code` trades the code for a token and stores it.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any

from google_auth_oauthlib.flow import Flow

from chat_scheduler.token_store import TokenStore

log = logging.getLogger("chat_scheduler.oauth")

SCOPES = [
    "https://www.googleapis.com/auth/calendar",
    "https://www.googleapis.com/auth/calendar.events",
    "https://www.googleapis.com/auth/userinfo.email",
    "openid",
]

GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"

# Google reports "openid" and the userinfo scope back in a different form than
# requested; oauthlib treats that as a scope change unless relaxed.
os.environ.setdefault("OAUTHLIB_RELAX_TOKEN_SCOPE", "1")


class GoogleOAuth:
    """Builds authorization URLs and exchanges codes for a stored token."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        token_store: TokenStore,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_uri = redirect_uri
        self._token_store = token_store

    @property
    def configured(self) -> bool:
        return bool(self._client_id and self._client_secret)

    def _build_flow(self) -> Flow:
        client_config = {
            "web": {
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "auth_uri": GOOGLE_AUTH_URI,
                "token_uri": GOOGLE_TOKEN_URI,
                "redirect_uris": [self._redirect_uri],
            }
        }
        # The start and callback requests build separate flows, so a PKCE
        # verifier generated on the first would be lost on the second.
        return Flow.from_client_config(
            client_config,
            scopes=SCOPES,
            redirect_uri=self._redirect_uri,
            autogenerate_code_verifier=False,
        )

    def authorization_url(self) -> str:
        flow = self._build_flow()
        url, _state = flow.authorization_url(
            access_type="offline",
            prompt="consent",
            include_granted_scopes="true",
        )
        return url

    def exchange_code(self, code: str) -> dict[str, Any]:
        """Fetch a token for ``code`` and persist it. Blocking."""
        flow = self._build_flow()
        flow.fetch_token(code=code)
        token = json.loads(flow.credentials.to_json())
        self._token_store.save(token)
        log.info("Google calendar connected (scopes: %s)", ", ".join(token.get("scopes", [])))
        return token
