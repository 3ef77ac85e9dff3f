import json
import time

import pytest

from token_storage import CookieBackend, FileBackend, TokenStorage


@pytest.fixture
def cookies():
    return CookieBackend(domain="catalog.example.com")


@pytest.fixture
def file_backend(tmp_path):
    return FileBackend(str(tmp_path / "session.json"))


@pytest.fixture
def storage(cookies, file_backend):
    return TokenStorage(cookies, file_backend)


def test_writes_go_to_both_backends(storage, cookies, file_backend):
    storage.set_token("abc")
    assert cookies.get("ott_token") == "abc"
    assert file_backend.get("ott_token") == "abc"
    assert storage.get_token() == "abc"


def test_cookie_attributes(storage, cookies):
    storage.set_token("abc")
    storage.set_refresh_token("def")
    by_name = {c.name: c for c in cookies.jar}
    token = by_name["ott_token"]
    assert token.secure is True
    assert token.get_nonstandard_attr("SameSite") == "Strict"
    day = 24 * 60 * 60
    assert token.expires == pytest.approx(time.time() + day, abs=60)
    assert by_name["ott_refresh_token"].expires == pytest.approx(time.time() + 7 * day, abs=60)


def test_file_is_the_fallback(storage, cookies):
    storage.set_refresh_token("def")
    cookies.remove("ott_refresh_token")
    assert cookies.get("ott_refresh_token") is None
    assert storage.get_refresh_token() == "def"


def test_cookie_wins_over_file(storage, cookies):
    storage.set_token("old")
    cookies.set("ott_token", "new")
    assert storage.get_token() == "new"


def test_user_round_trip_and_clear(storage, file_backend):
    storage.set_token("abc")
    storage.set_user({"username": "alice", "role": "admin"})
    assert storage.get_user() == {"username": "alice", "role": "admin"}

    storage.clear()
    assert storage.get_token() is None
    assert storage.get_user() is None
    assert file_backend.get("ott_user") is None


def test_unreadable_file_is_ignored(tmp_path):
    path = tmp_path / "session.json"
    path.write_text("{not json", encoding="utf-8")
    assert FileBackend(str(path)).get("ott_token") is None


def test_malformed_cached_user(storage, file_backend):
    file_backend.set("ott_user", "{oops")
    assert storage.get_user() is None


def test_file_contents_are_json(storage, file_backend):
    storage.set_token("abc")
    with open(file_backend.path, encoding="utf-8") as fh:
        assert json.load(fh) == {"ott_token": "abc"}
