"""
Client-side persistence of the auth token, the refresh token and the cached
user object.

Everything is written to two places, a cookie jar and a JSON file. Reads
prefer the cookie and fall back to the file.
"""
import json
import logging
import os
import time
from typing import Any, Dict, Optional

from requests.cookies import RequestsCookieJar, create_cookie

logger = logging.getLogger(__name__)

TOKEN_KEY = "ott_token"
REFRESH_TOKEN_KEY = "ott_refresh_token"
USER_KEY = "ott_user"

DAY = 24 * 60 * 60
LIFETIME_DAYS = {TOKEN_KEY: 1, REFRESH_TOKEN_KEY: 7, USER_KEY: 1}


class CookieBackend:
    def __init__(self, jar: Optional[RequestsCookieJar] = None, domain: str = ""):
        self.jar = jar if jar is not None else RequestsCookieJar()
        self.domain = domain

    def get(self, key: str) -> Optional[str]:
        for cookie in self.jar:
            if cookie.name == key and not cookie.is_expired():
                return cookie.value
        return None

    def set(self, key: str, value: str, days: int = 1) -> None:
        self.remove(key)
        cookie = create_cookie(
            key,
            value,
            domain=self.domain,
            path="/",
            secure=True,
            expires=int(time.time()) + days * DAY,
            rest={"SameSite": "Strict"},
        )
        self.jar.set_cookie(cookie)

    def remove(self, key: str) -> None:
        for cookie in [c for c in self.jar if c.name == key]:
            self.jar.clear(cookie.domain, cookie.path, cookie.name)


class FileBackend:
    def __init__(self, path: str):
        self.path = path

    def _load(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, encoding="utf-8") as fh:
            try:
                return json.load(fh)
            except json.JSONDecodeError:
                logger.warning("Ignoring unreadable token store at %s", self.path)
                return {}

    def _save(self, data: Dict[str, str]) -> None:
        with open(self.path, "w", encoding="utf-8") as fh:
            json.dump(data, fh)

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str, days: int = 1) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._save(data)


class TokenStorage:
    def __init__(self, cookies: CookieBackend, file: FileBackend):
        self.backends = [cookies, file]

    def _get(self, key: str) -> Optional[str]:
        for backend in self.backends:
            value = backend.get(key)
            if value:
                return value
        return None

    def _set(self, key: str, value: str) -> None:
        for backend in self.backends:
            backend.set(key, value, LIFETIME_DAYS[key])

    def get_token(self) -> Optional[str]:
        return self._get(TOKEN_KEY)

    def set_token(self, token: str) -> None:
        self._set(TOKEN_KEY, token)

    def get_refresh_token(self) -> Optional[str]:
        return self._get(REFRESH_TOKEN_KEY)

    def set_refresh_token(self, token: str) -> None:
        self._set(REFRESH_TOKEN_KEY, token)

    def get_user(self) -> Optional[Dict[str, Any]]:
        raw = self._get(USER_KEY)
        if not raw:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding malformed cached user")
            return None

    def set_user(self, user: Dict[str, Any]) -> None:
        self._set(USER_KEY, json.dumps(user))

    def clear(self) -> None:
        for key in (TOKEN_KEY, REFRESH_TOKEN_KEY, USER_KEY):
            for backend in self.backends:
                backend.remove(key)
