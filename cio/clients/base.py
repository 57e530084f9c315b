"""
Shared plumbing for the third-party API clients.

Every client is a thin wrapper: build a request against the product's base URL,
attach bearer or basic auth, raise ``APIError`` on an unexpected status, and
decode JSON into pydantic models. Clients use the shared ``httpx.AsyncClient``
unless one is injected (tests pass one backed by ``httpx.MockTransport``).
"""
import logging
from typing import Any, Dict, Iterable, Optional
from urllib.parse import urlencode

import httpx
from pydantic import BaseModel, ConfigDict

from cio.core.http_client import get_http_client
from cio.core.logging_config import LogCategory

logger = logging.getLogger(LogCategory.CLIENTS)


class APIError(Exception):
    """An API call returned a status the client did not expect."""

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"status code: {status_code}, body: {body}")


class APIConnectionError(Exception):
    """The request never produced a response (DNS, TLS, timeout)."""


class AccessToken(BaseModel):
    """OAuth token response, common across providers."""

    model_config = ConfigDict(extra="allow")

    access_token: str = ""
    token_type: str = ""
    expires_in: int = 0
    refresh_token: str = ""
    refresh_token_expires_in: int = 0
    scope: str = ""


class BaseClient:
    """Base class for all API clients."""

    base_url: str = ""
    product: str = ""

    def __init__(self, *, http_client: Optional[httpx.AsyncClient] = None, base_url: Optional[str] = None):
        self._http_client = http_client
        if base_url:
            self.base_url = base_url

    async def _client(self) -> httpx.AsyncClient:
        if self._http_client is not None:
            return self._http_client
        return await get_http_client()

    def _auth_headers(self) -> Dict[str, str]:
        return {}

    def _auth(self) -> Optional[httpx.Auth]:
        return None

    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    @staticmethod
    def _safe_json(response: httpx.Response) -> Any:
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Any = None,
        json: Any = None,
        data: Any = None,
        headers: Optional[Dict[str, str]] = None,
        auth: Optional[httpx.Auth] = None,
        expected: Iterable[int] = (200,),
        authenticated: bool = True,
    ) -> httpx.Response:
        """
        Send a request and check its status.

        Raises:
            APIError: Response status not in ``expected``
            APIConnectionError: No response was received
        """
        client = await self._client()
        url = self._url(path)

        request_headers = {"Accept": "application/json"}
        if authenticated:
            request_headers.update(self._auth_headers())
        if headers:
            request_headers.update(headers)

        kwargs: Dict[str, Any] = {"params": params, "headers": request_headers}
        if json is not None:
            kwargs["json"] = json
        if data is not None:
            kwargs["data"] = data
        request_auth = auth or (self._auth() if authenticated else None)
        if request_auth is not None:
            kwargs["auth"] = request_auth

        try:
            response = await client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            logger.error(f"{self.product or type(self).__name__} request failed: {method} {url}: {e}")
            raise APIConnectionError(f"{method} {url} failed: {e}") from e

        if response.status_code not in tuple(expected):
            logger.warning(
                f"{self.product or type(self).__name__} returned {response.status_code} for {method} {url}"
            )
            raise APIError(response.status_code, response.text)

        return response

    async def _get_json(self, path: str, **kwargs) -> Any:
        response = await self._request("GET", path, **kwargs)
        return self._safe_json(response)


class BearerTokenClient(BaseClient):
    """Client that authenticates with ``Authorization: Bearer <token>``."""

    def __init__(self, token: str = "", **kwargs):
        super().__init__(**kwargs)
        self.token = token

    def _auth_headers(self) -> Dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}


class OAuthClient(BearerTokenClient):
    """
    Bearer client whose token comes from an OAuth authorization-code grant.

    Subclasses set ``authorize_url``, ``token_url`` and optionally ``scopes``.
    When ``token_basic_auth`` is set the client credentials are sent as HTTP
    basic auth on the token endpoint instead of in the form body.
    """

    authorize_url: str = ""
    token_url: str = ""
    scopes: str = ""
    token_basic_auth: bool = False

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str = "",
        token: str = "",
        refresh_token: str = "",
        **kwargs,
    ):
        super().__init__(token=token, **kwargs)
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.refresh_token = refresh_token

    def user_consent_url(self, state: Optional[str] = None) -> str:
        """URL the user visits to grant access."""
        params = {
            "client_id": self.client_id,
            "response_type": "code",
            "redirect_uri": self.redirect_uri,
        }
        if self.scopes:
            params["scope"] = self.scopes
        if state:
            params["state"] = state
        return f"{self.authorize_url}?{urlencode(params)}"

    async def get_access_token(self, code: str) -> AccessToken:
        """Exchange an authorization code for tokens."""
        return await self._token_request({
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.redirect_uri,
        })

    async def refresh_access_token(self) -> AccessToken:
        """Trade the refresh token for a new access token."""
        if not self.refresh_token:
            raise ValueError(f"{self.product} client has no refresh token")
        return await self._token_request({
            "grant_type": "refresh_token",
            "refresh_token": self.refresh_token,
        })

    async def _token_request(self, form: Dict[str, str]) -> AccessToken:
        auth = None
        if self.token_basic_auth:
            auth = httpx.BasicAuth(self.client_id, self.client_secret)
        else:
            form = {**form, "client_id": self.client_id, "client_secret": self.client_secret}

        response = await self._request(
            "POST",
            self.token_url,
            data=form,
            auth=auth,
            authenticated=False,
        )
        token = AccessToken.model_validate(self._safe_json(response))

        self.token = token.access_token
        if token.refresh_token:
            self.refresh_token = token.refresh_token
        return token


class ClientCredentialsClient(BearerTokenClient):
    """Bearer client that mints its own token with the client-credentials grant."""

    token_url: str = ""
    scopes: str = ""

    def __init__(self, client_id: str, client_secret: str, token: str = "", **kwargs):
        super().__init__(token=token, **kwargs)
        self.client_id = client_id
        self.client_secret = client_secret

    async def get_access_token(self) -> AccessToken:
        form = {"grant_type": "client_credentials"}
        if self.scopes:
            form["scope"] = self.scopes

        response = await self._request(
            "POST",
            self.token_url,
            data=form,
            auth=httpx.BasicAuth(self.client_id, self.client_secret),
            authenticated=False,
        )
        token = AccessToken.model_validate(self._safe_json(response))
        self.token = token.access_token
        return token

    async def _ensure_token(self) -> None:
        if not self.token:
            await self.get_access_token()
