"""Microsoft Graph implementation of the directory capability."""

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from ..config import ConfigurationError
from ..models.base import DirectoryUser
from .base import DirectoryClient, DirectoryError

logger = logging.getLogger(__name__)

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"
TOKEN_URL_TEMPLATE = "https://login.microsoftonline.com/{tenant_id}/oauth2/v2.0/token"
GRAPH_SCOPE = "https://graph.microsoft.com/.default"
USER_FIELDS = "id,userPrincipalName,displayName,accountEnabled"

# Refresh tokens this many seconds before they expire.
TOKEN_REFRESH_MARGIN = 60


def _error_message(response: httpx.Response) -> str:
    """Pull the human-readable message out of a Graph or token endpoint error."""
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if body.get("error_description"):
            return str(body["error_description"])

    return response.reason_phrase or "Unknown error"


class GraphDirectory(DirectoryClient):
    """Directory client for Entra ID using the client-credentials flow."""

    def __init__(
        self,
        tenant_id: Optional[str],
        client_id: Optional[str],
        client_secret: Optional[str],
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        if not tenant_id or not client_id or not client_secret:
            raise ConfigurationError(
                "Missing required credentials: tenantId, clientId, clientSecret"
            )

        self.tenant_id = tenant_id
        self.client_id = client_id
        self.client_secret = client_secret
        self._http = http_client
        self._owns_http = http_client is None
        self._token: Optional[str] = None
        self._token_expires_at = 0.0
        self._token_lock: Optional[asyncio.Lock] = None

    @property
    def http(self) -> httpx.AsyncClient:
        """Get or create the shared HTTP client."""
        if self._http is None:
            self._http = httpx.AsyncClient()
        return self._http

    async def _get_access_token(self) -> str:
        # Created here so the lock belongs to the running event loop.
        if self._token_lock is None:
            self._token_lock = asyncio.Lock()
        async with self._token_lock:
            if self._token and time.monotonic() < self._token_expires_at:
                return self._token

            logger.debug(f"Requesting Graph access token for tenant {self.tenant_id}")
            try:
                response = await self.http.post(
                    TOKEN_URL_TEMPLATE.format(tenant_id=self.tenant_id),
                    data={
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "scope": GRAPH_SCOPE,
                        "grant_type": "client_credentials",
                    },
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                raise DirectoryError(
                    _error_message(e.response), status_code=e.response.status_code
                ) from e
            except httpx.HTTPError as e:
                raise DirectoryError(str(e) or "Unknown error") from e

            payload = response.json()
            self._token = payload["access_token"]
            expires_in = int(payload.get("expires_in", 3600))
            self._token_expires_at = time.monotonic() + max(expires_in - TOKEN_REFRESH_MARGIN, 0)
            return self._token

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, str]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        token = await self._get_access_token()
        try:
            response = await self.http.request(
                method,
                f"{GRAPH_BASE_URL}{path}",
                params=params,
                json=json,
                headers={"Authorization": f"Bearer {token}"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            message = _error_message(e.response)
            logger.error(f"Graph {method} {path} failed ({e.response.status_code}): {message}")
            raise DirectoryError(message, status_code=e.response.status_code) from e
        except httpx.HTTPError as e:
            logger.error(f"Graph {method} {path} failed: {e}")
            raise DirectoryError(str(e) or "Unknown error") from e

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    @staticmethod
    def _user_path(user_id: str) -> str:
        return f"/users/{quote(user_id, safe='')}"

    async def _set_account_enabled(self, user_id: str, enabled: bool) -> DirectoryUser:
        await self._request("PATCH", self._user_path(user_id), json={"accountEnabled": enabled})
        # PATCH answers 204 without a body, so read back the updated account.
        return await self.get_user(user_id)

    async def enable_user(self, user_id: str) -> DirectoryUser:
        return await self._set_account_enabled(user_id, True)

    async def disable_user(self, user_id: str) -> DirectoryUser:
        return await self._set_account_enabled(user_id, False)

    async def get_user(self, user_id: str) -> DirectoryUser:
        data = await self._request("GET", self._user_path(user_id), params={"$select": USER_FIELDS})
        return DirectoryUser.from_graph(data or {})

    async def search_users(self, display_name: str) -> List[DirectoryUser]:
        escaped = display_name.replace("'", "''")
        data = await self._request(
            "GET",
            "/users",
            params={
                "$filter": f"startswith(displayName,'{escaped}')",
                "$select": USER_FIELDS,
            },
        )
        return [DirectoryUser.from_graph(item) for item in (data or {}).get("value", [])]

    async def aclose(self) -> None:
        if self._http is not None and self._owns_http:
            await self._http.aclose()
            self._http = None
