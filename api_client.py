"""
HTTP client for the catalog API, plus the small state holders a UI binds to.

A 401 triggers exactly one refresh-and-retry. Concurrent 401s are not
coalesced: each request refreshes on its own.
"""
import logging
from typing import Any, Dict, Optional

import requests

from token_storage import TokenStorage

logger = logging.getLogger(__name__)

TIMEOUT = 30


class ApiError(Exception):
    def __init__(self, status_code: int, message: str, errors=None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.errors = errors


class SessionExpired(ApiError):
    def __init__(self, message: str = "Session expired, please log in again"):
        super().__init__(401, message)


class ApiClient:
    def __init__(self, base_url: str, storage: TokenStorage, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.storage = storage
        self.session = session or requests.Session()

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _headers(self) -> Dict[str, str]:
        token = self.storage.get_token()
        return {"Authorization": f"Bearer {token}"} if token else {}

    def _send(self, method: str, path: str, **kwargs) -> requests.Response:
        logger.debug("API request: %s %s", method, path)
        return self.session.request(method, self._url(path), headers=self._headers(), timeout=TIMEOUT, **kwargs)

    def _refresh(self) -> bool:
        refresh_token = self.storage.get_refresh_token()
        if not refresh_token:
            return False
        logger.info("Attempting to refresh token")
        response = self.session.post(self._url("/auth/refresh-token"), json={"refreshToken": refresh_token}, timeout=TIMEOUT)
        if response.status_code != 200:
            logger.warning("Token refresh failed with status %s", response.status_code)
            return False
        data = response.json().get("data") or {}
        self.storage.set_token(data["token"])
        if data.get("refreshToken"):
            self.storage.set_refresh_token(data["refreshToken"])
        return True

    @staticmethod
    def _unwrap(response: requests.Response) -> Any:
        try:
            body = response.json()
        except ValueError:
            if response.ok:
                return response.text
            raise ApiError(response.status_code, response.reason or "Request failed")
        if not response.ok or body.get("success") is False:
            raise ApiError(response.status_code, body.get("message", "Request failed"), body.get("errors"))
        return body.get("data", body)

    def request(self, method: str, path: str, raw: bool = False, **kwargs) -> Any:
        response = self._send(method, path, **kwargs)
        if response.status_code == 401 and self.storage.get_token():
            if not self._refresh():
                self.storage.clear()
                raise SessionExpired()
            response = self._send(method, path, **kwargs)
            if response.status_code == 401:
                self.storage.clear()
                raise SessionExpired()
        if raw:
            if not response.ok:
                self._unwrap(response)
            return response
        return self._unwrap(response)

    # -------- Auth --------

    def _store_session(self, data: Dict[str, Any]) -> Dict[str, Any]:
        self.storage.set_token(data["token"])
        self.storage.set_refresh_token(data["refreshToken"])
        self.storage.set_user(data["user"])
        return data["user"]

    def login(self, email: str, password: str) -> Dict[str, Any]:
        return self._store_session(self.request("POST", "/auth/login", json={"email": email, "password": password}))

    def register(self, username: str, email: str, password: str) -> Dict[str, Any]:
        payload = {"username": username, "email": email, "password": password}
        return self._store_session(self.request("POST", "/auth/register", json=payload))

    def logout(self) -> None:
        try:
            self.request("POST", "/auth/logout")
        finally:
            self.storage.clear()

    def profile(self) -> Dict[str, Any]:
        user = self.request("GET", "/users/profile")["user"]
        self.storage.set_user(user)
        return user

    # -------- Content --------

    def list_content(self, **filters) -> Dict[str, Any]:
        return self.request("GET", "/content", params=filters)

    def import_csv(self, filename: str, data: bytes) -> Dict[str, Any]:
        return self.request("POST", "/content/import-csv", files={"csvFile": (filename, data, "text/csv")})

    def import_errors(self, session: str = "all", page: int = 1, limit: int = 50) -> Dict[str, Any]:
        return self.request("GET", "/content/import-csv/errors", params={"session": session, "page": page, "limit": limit})

    def export_csv(self, **filters) -> str:
        return self.request("GET", "/content/export/csv", raw=True, params=filters).text

    # -------- Analytics --------

    def analytics(self, name: str, **filters) -> Any:
        params = {k: ",".join(map(str, v)) if isinstance(v, (list, tuple)) else v for k, v in filters.items() if v not in (None, "")}
        return self.request("GET", f"/analytics/{name}", params=params)

    def health(self) -> Dict[str, Any]:
        return self.request("GET", "/health")


class AuthState:
    """Current-user holder; seeded from the cached user so a restart skips a round trip."""

    def __init__(self, client: ApiClient):
        self.client = client
        self.user: Optional[Dict[str, Any]] = client.storage.get_user()

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None and self.client.storage.get_token() is not None

    @property
    def is_admin(self) -> bool:
        return bool(self.user) and self.user.get("role") == "admin"

    def login(self, email: str, password: str) -> Dict[str, Any]:
        self.user = self.client.login(email, password)
        return self.user

    def logout(self) -> None:
        try:
            self.client.logout()
        finally:
            self.user = None


class FilterState:
    """Content-list filters shared between views."""

    def __init__(self, **initial):
        self.filters: Dict[str, Any] = dict(initial)
        self.page = 1

    def set(self, key: str, value: Any) -> None:
        if value in (None, "", [], ()):
            self.filters.pop(key, None)
        else:
            self.filters[key] = value
        self.page = 1

    def get(self, key: str, default: Any = None) -> Any:
        return self.filters.get(key, default)

    def reset(self) -> None:
        self.filters.clear()
        self.page = 1

    def as_params(self) -> Dict[str, Any]:
        params = {k: ",".join(map(str, v)) if isinstance(v, (list, tuple)) else v for k, v in self.filters.items()}
        params["page"] = self.page
        return params
