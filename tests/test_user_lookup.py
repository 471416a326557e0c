import asyncio

import httpx
import respx

from user_lookup import CurrentUserClient

AUTH_URL = "https://auth.queit.test/api/auth/user"


def lookup(client, cookie=None):
    return asyncio.run(client.fetch_user_id(cookie))


@respx.mock
def test_returns_user_id_and_forwards_cookie():
    route = respx.get(AUTH_URL).respond(200, json={"id": 42, "username": "ada"})

    assert lookup(CurrentUserClient(AUTH_URL), "session=abc") == "42"
    assert route.called
    assert route.calls.last.request.headers["cookie"] == "session=abc"


@respx.mock
def test_unauthenticated_is_anonymous():
    respx.get(AUTH_URL).respond(401, json={"message": "Not authenticated"})
    assert lookup(CurrentUserClient(AUTH_URL)) is None


@respx.mock
def test_server_error_is_anonymous():
    respx.get(AUTH_URL).respond(500)
    assert lookup(CurrentUserClient(AUTH_URL)) is None


@respx.mock
def test_timeout_is_anonymous():
    respx.get(AUTH_URL).mock(side_effect=httpx.ConnectTimeout("timed out"))
    assert lookup(CurrentUserClient(AUTH_URL)) is None


@respx.mock
def test_non_json_body_is_anonymous():
    respx.get(AUTH_URL).respond(200, text="<html>login</html>")
    assert lookup(CurrentUserClient(AUTH_URL)) is None


@respx.mock
def test_body_without_id_is_anonymous():
    respx.get(AUTH_URL).respond(200, json={"username": "ada"})
    assert lookup(CurrentUserClient(AUTH_URL)) is None


@respx.mock
def test_disabled_lookup_makes_no_request():
    route = respx.get(AUTH_URL).respond(200, json={"id": 1})
    client = CurrentUserClient(None)

    assert client.enabled is False
    assert lookup(client, "session=abc") is None
    assert not route.called
