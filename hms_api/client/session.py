"""
Session client for the admin API.

Holds the access/refresh token pair, attaches the bearer token to every
request, and transparently refreshes once when the API answers 401.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import httpx
import structlog

from hms_api.config import settings
from hms_api.schemas.auth import RESET_CONFIRMATION

logger = structlog.get_logger()

RETRY_EXTENSION = "hms_retry"

# Endpoints whose 401 means bad credentials, not an expired session
NO_REFRESH_PATHS = ("/auth/login", "/auth/register", "/auth/refresh-token")


class APIRequestError(Exception):
    """Non-2xx response from the admin API"""

    def __init__(self, status_code: int, message: str, payload: Optional[Dict[str, Any]] = None):
        self.status_code = status_code
        self.message = message
        self.payload = payload or {}
        super().__init__(f"{status_code}: {message}")


class TokenStore:
    """Access and refresh tokens, optionally mirrored to a JSON file"""

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path) if path else None
        self.access_token: Optional[str] = None
        self.refresh_token: Optional[str] = None
        self._load()

    def _load(self) -> None:
        if not self.path or not self.path.exists():
            return
        try:
            stored = json.loads(self.path.read_text())
        except (OSError, ValueError):
            logger.warning("Ignoring unreadable token file", path=str(self.path))
            return
        self.access_token = stored.get("accessToken")
        self.refresh_token = stored.get("refreshToken")

    def _save(self) -> None:
        if not self.path:
            return
        self.path.write_text(json.dumps({
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
        }))

    def set(self, access_token: str, refresh_token: str) -> None:
        self.access_token = access_token
        self.refresh_token = refresh_token
        self._save()

    def clear(self) -> None:
        self.access_token = None
        self.refresh_token = None
        if self.path and self.path.exists():
            self.path.unlink()

    @property
    def is_authenticated(self) -> bool:
        return self.access_token is not None


class RefreshingAuth(httpx.Auth):
    """
    Bearer auth that refreshes the token pair once on 401.

    The original request is resent at most once, marked with the
    ``hms_retry`` extension. If the refresh fails, or the retried request is
    still rejected, the stored tokens are cleared and ``on_session_expired``
    is called unless the caller is already on the login view.

    Async requests recover one at a time. A request whose token was already
    replaced by another refresh is replayed with the new token instead of
    spending the rotated refresh token a second time.
    """

    requires_response_body = True

    def __init__(
        self,
        store: TokenStore,
        refresh_url: str,
        on_session_expired: Optional[Callable[[], None]] = None,
        is_on_login_view: Optional[Callable[[], bool]] = None,
    ):
        self.store = store
        self.refresh_url = refresh_url
        self.on_session_expired = on_session_expired
        self.is_on_login_view = is_on_login_view or (lambda: False)
        self._refresh_lock: Optional[asyncio.Lock] = None

    def _authorize(self, request: httpx.Request) -> Optional[str]:
        """Attach the current access token and return it"""
        token = self.store.access_token
        if token:
            request.headers["Authorization"] = f"Bearer {token}"
        return token

    def _expire(self) -> None:
        self.store.clear()
        logger.info("Session expired")
        if self.on_session_expired and not self.is_on_login_view():
            self.on_session_expired()

    @staticmethod
    def _needs_recovery(request: httpx.Request, response: httpx.Response) -> bool:
        return response.status_code == 401 and not request.url.path.endswith(NO_REFRESH_PATHS)

    def _recover(self, request: httpx.Request, sent_token: Optional[str]):
        """Refresh or replay after a 401; yields the requests still to send"""
        if request.extensions.get(RETRY_EXTENSION):
            self._expire()
            return

        request.extensions[RETRY_EXTENSION] = True

        if self.store.access_token and self.store.access_token != sent_token:
            logger.debug("Replaying with refreshed token", path=request.url.path)
            self._authorize(request)
            response = yield request
            if response.status_code == 401:
                self._expire()
            return

        if not self.store.refresh_token:
            self._expire()
            return

        refresh_response = yield httpx.Request(
            "POST",
            self.refresh_url,
            json={"refreshToken": self.store.refresh_token},
        )
        if refresh_response.status_code != 200:
            self._expire()
            return

        tokens = refresh_response.json()["data"]["tokens"]
        self.store.set(tokens["accessToken"], tokens["refreshToken"])

        self._authorize(request)
        response = yield request
        if response.status_code == 401:
            self._expire()

    def auth_flow(self, request: httpx.Request):
        sent_token = self._authorize(request)
        response = yield request

        if self._needs_recovery(request, response):
            yield from self._recover(request, sent_token)

    async def async_auth_flow(self, request: httpx.Request):
        sent_token = self._authorize(request)
        response = yield request
        await response.aread()

        if not self._needs_recovery(request, response):
            return

        if self._refresh_lock is None:
            self._refresh_lock = asyncio.Lock()

        async with self._refresh_lock:
            flow = self._recover(request, sent_token)
            try:
                next_request = next(flow)
                while True:
                    response = yield next_request
                    await response.aread()
                    next_request = flow.send(response)
            except StopIteration:
                return


class SessionClient:
    """Async client for the admin API with an injected token store"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        store: Optional[TokenStore] = None,
        on_session_expired: Optional[Callable[[], None]] = None,
        is_on_login_view: Optional[Callable[[], bool]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        production: Optional[bool] = None,
        timeout: float = 10.0,
    ):
        self.base_url = (base_url or settings.hms_api_url).rstrip("/")
        self.store = store or TokenStore()
        self.production = settings.is_production if production is None else production
        self.auth = RefreshingAuth(
            self.store,
            refresh_url=f"{self.base_url}/auth/refresh-token",
            on_session_expired=on_session_expired,
            is_on_login_view=is_on_login_view,
        )
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            auth=self.auth,
            transport=transport,
            timeout=timeout,
        )

    async def __aenter__(self) -> "SessionClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _unwrap(response: httpx.Response) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if response.is_error:
            message = payload.get("message") or response.reason_phrase
            raise APIRequestError(response.status_code, message, payload)
        return payload

    async def request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        """Send a request and return the decoded envelope, raising on non-2xx"""
        response = await self._client.request(method, url, **kwargs)
        return self._unwrap(response)

    async def get(self, url: str, **kwargs) -> Dict[str, Any]:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs) -> Dict[str, Any]:
        return await self.request("POST", url, **kwargs)

    async def put(self, url: str, **kwargs) -> Dict[str, Any]:
        return await self.request("PUT", url, **kwargs)

    async def patch(self, url: str, **kwargs) -> Dict[str, Any]:
        return await self.request("PATCH", url, **kwargs)

    async def delete(self, url: str, **kwargs) -> Dict[str, Any]:
        return await self.request("DELETE", url, **kwargs)

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        """Log in, store the token pair and return the user"""
        payload = await self.post("/auth/login", json={"email": email, "password": password})
        tokens = payload["data"]["tokens"]
        self.store.set(tokens["accessToken"], tokens["refreshToken"])
        return payload["data"]["user"]

    async def logout(self) -> None:
        """Revoke the session remotely; local tokens are cleared even if that fails"""
        try:
            await self.post("/auth/logout")
        except (httpx.HTTPError, APIRequestError) as e:
            logger.warning("Remote logout failed", error=str(e))
        finally:
            self.store.clear()

    async def profile(self) -> Dict[str, Any]:
        payload = await self.get("/auth/profile")
        return payload["data"]["user"]

    async def reset_system(self) -> Dict[str, Any]:
        """Delete all users on a development server"""
        if self.production:
            raise RuntimeError("System reset is disabled in production")
        payload = await self.post("/auth/reset-system", json={"confirm_reset": RESET_CONFIRMATION})
        self.store.clear()
        return payload
