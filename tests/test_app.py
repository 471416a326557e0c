import re

import pytest
import respx
from fastapi.testclient import TestClient

import config
from app import app
from limiter import limiter

SECURE_URL = re.compile(r"/v2/\?code=([A-Za-z0-9]{16})&errorCode=([a-z0-9]{6})#(.*)")
AUTH_URL = "https://auth.queit.test/api/auth/user"

BROWSER = {
    "accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "user-agent": "BrowserOne/1.0 (X11; Linux x86_64)",
    "accept-language": "en-US,en;q=0.9",
}


@pytest.fixture
def client():
    """
    Test client with a fresh code store. Entering the client runs the app
    lifespan, which builds a new store for every test.
    """
    limiter.reset()
    with TestClient(app) as test_client:
        yield test_client


# ===================================
# 1. Page loads
# ===================================

def test_health_check(client: TestClient):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["codes_tracked"] == 0


def test_page_load_redirects_to_secure_url(client: TestClient):
    response = client.get("/article/42", headers=BROWSER, follow_redirects=False)

    assert response.status_code == 302
    match = SECURE_URL.fullmatch(response.headers["location"])
    assert match
    assert match.group(3) == "article/42"
    assert client.get("/health").json()["codes_tracked"] == 1


def test_root_page_load_redirects_with_empty_fragment(client: TestClient):
    response = client.get("/", headers=BROWSER, follow_redirects=False)
    assert response.status_code == 302
    assert SECURE_URL.fullmatch(response.headers["location"]).group(3) == ""


def test_redirect_lands_on_secure_shell(client: TestClient):
    response = client.get("/guilds", headers=BROWSER)
    assert response.status_code == 200
    assert "secure_router.js" in response.text


@pytest.mark.parametrize("path", ["/login", "/auth", "/register", "/uploads/a.png"])
def test_excluded_page_loads_are_not_redirected(client: TestClient, path: str):
    response = client.get(path, headers=BROWSER, follow_redirects=False)
    assert response.status_code == 404


def test_version_path_without_slash_is_not_transformed(client: TestClient):
    response = client.get("/v2", headers=BROWSER, follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"].endswith("/v2/")
    assert "code=" not in response.headers["location"]
    assert client.get("/health").json()["codes_tracked"] == 0


def test_non_html_requests_are_not_redirected(client: TestClient):
    response = client.get("/article/42", follow_redirects=False)
    assert response.status_code == 404


def test_secure_shell_sets_security_headers(client: TestClient):
    response = client.get("/v2/?code=ABCDEFGHIJKLMNOP&errorCode=abc123", headers=BROWSER)

    assert response.status_code == 200
    assert response.headers["x-security-version"] == "v2"
    assert response.headers["x-security-code"] == "ABCDEFGHIJKLMNOP"
    assert response.headers["x-frame-options"] == "DENY"
    assert 'data-server-path="/"' in response.text


def test_secure_shell_resolves_legacy_code_format(client: TestClient):
    response = client.get("/v2/?code=tok/article/9", headers=BROWSER)

    assert response.status_code == 200
    assert 'data-server-path="/article/9"' in response.text
    assert "x-security-code" not in response.headers


# ===================================
# 2. Secure link API
# ===================================

def test_create_secure_link(client: TestClient):
    response = client.post("/api/v1/secure-links", json={"path": "/article/42"})

    assert response.status_code == 201
    data = response.json()
    assert data["path"] == "/article/42"
    match = SECURE_URL.fullmatch(data["secure_url"])
    assert match
    assert data["code"] == match.group(1)
    assert data["error_code"] == match.group(2)


def test_each_secure_link_gets_a_new_code(client: TestClient):
    first = client.post("/api/v1/secure-links", json={"path": "/trending"}).json()
    second = client.post("/api/v1/secure-links", json={"path": "/trending"}).json()
    assert first["code"] != second["code"]


@pytest.mark.parametrize("payload, status_code", [
    ({"path": "article/42"}, 400),
    ({"path": "/article#42"}, 400),
    ({"path": "/" + "a" * 3000}, 400),
    ({"path": ""}, 422),
    ({}, 422),
])
def test_create_secure_link_rejects_bad_paths(client: TestClient, payload, status_code):
    response = client.post("/api/v1/secure-links", json=payload)
    assert response.status_code == status_code


def test_resolve_secure_link(client: TestClient):
    created = client.post("/api/v1/secure-links", json={"path": "/guild/7"}).json()

    response = client.post("/api/v1/secure-links/resolve", json={"url": created["secure_url"]})

    assert response.status_code == 200
    data = response.json()
    assert data["is_secure"] is True
    assert data["original_path"] == "/guild/7"
    assert data["code"] == created["code"]
    assert data["error_code"] == created["error_code"]


@pytest.mark.parametrize("url", ["/home", "/v2/?errorCode=x1#home"])
def test_resolve_falls_back_to_plain_path(client: TestClient, url: str):
    data = client.post("/api/v1/secure-links/resolve", json={"url": url}).json()
    assert data["is_secure"] is False
    assert data["original_path"] == url
    assert data["code"] is None
    assert data["error_code"] is None


# ===================================
# 3. Code validation
# ===================================

def test_validate_code_from_same_device(client: TestClient):
    code = client.post("/api/v1/secure-links", json={"path": "/iq-test"}, headers=BROWSER).json()["code"]

    response = client.post("/api/v1/codes/validate", json={"code": code}, headers=BROWSER)

    assert response.status_code == 200
    assert response.json() == {"valid": True}


def test_validate_code_from_other_device(client: TestClient):
    code = client.post("/api/v1/secure-links", json={"path": "/iq-test"}, headers=BROWSER).json()["code"]

    other_device = {**BROWSER, "user-agent": "BrowserTwo/1.0 (Macintosh)"}
    response = client.post("/api/v1/codes/validate", json={"code": code}, headers=other_device)

    assert response.json() == {"valid": False}


def test_validate_unknown_code(client: TestClient):
    response = client.post("/api/v1/codes/validate", json={"code": "NOPENOPENOPENOPE"})
    assert response.json() == {"valid": False}


# ===================================
# 4. Current-user binding
# ===================================

def test_links_are_bound_to_signed_in_user(monkeypatch):
    monkeypatch.setattr(config, "AUTH_USER_URL", AUTH_URL)
    limiter.reset()

    with respx.mock(assert_all_called=False) as respx_mock:
        route = respx_mock.get(AUTH_URL).respond(200, json={"id": "user-1"})

        with TestClient(app) as client:
            data = client.post(
                "/api/v1/secure-links",
                json={"path": "/profile"},
                headers={"cookie": "connect.sid=s%3Aabc"},
            ).json()
            store = client.app.state.store

            assert store.code_for_user("user-1") == data["code"]
            assert "connect.sid=s%3Aabc" in route.calls.last.request.headers["cookie"]
