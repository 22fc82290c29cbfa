"""Tests for the REST API (FastAPI)."""

from __future__ import annotations

from concurrent.futures import Executor
from typing import Any
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from cla_assistant.api.cla import ClaApi
from cla_assistant.api.factory import Components, build_components
from cla_assistant.api.repo import RepoApi
from cla_assistant.config import ClaSettings
from cla_assistant.errors import (
    CheckError,
    ClaError,
    Forbidden,
    ForgeError,
    NotAuthenticated,
    NotFound,
    RenderError,
    SignError,
)
from cla_assistant.github.client import ForgeResponse
from cla_assistant.models import CheckResult, RenderedCla, RepoRecord, SignatureRecord
from cla_assistant.server.app import create_app
from cla_assistant.services.store import RepoStore, SignatureStore

GIST_URL = "https://gist.github.com/octocat/aa5a315d61ae9438b18d"
GIST_VERSION = "57a7f021a713b1c5a6a199b54cc514735d2d462f"


@pytest.fixture
def cla_api() -> Mock:
    return Mock(spec=ClaApi)


@pytest.fixture
def repo_api() -> Mock:
    return Mock(spec=RepoApi)


@pytest.fixture
def client(settings: ClaSettings, github: Mock, cla_api: Mock, repo_api: Mock) -> TestClient:
    components = Components(github=github, cla=cla_api, repos=repo_api)
    return TestClient(create_app(settings, components=components))


@pytest.fixture
def alice_token(forge_routes: dict[tuple[str, str], Any]) -> dict[str, str]:
    forge_routes[("user", "get")] = ForgeResponse(
        status_code=200, data={"login": "alice", "id": 1001}
    )
    return {"Authorization": "token alice_token"}


def test_health(client: TestClient) -> None:
    resp = client.get("/api/health")

    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_get_cla_anonymously(client: TestClient, cla_api: Mock, github: Mock) -> None:
    cla_api.get.return_value = RenderedCla(raw="# CLA", html="<h1>CLA</h1>")

    resp = client.post("/api/cla/get", json={"owner": "octocat", "repo": "Hello-World"})

    assert resp.status_code == 200
    assert resp.json() == {"raw": "# CLA", "html": "<h1>CLA</h1>"}
    ctx = cla_api.get.call_args.args[0]
    assert ctx.user is None
    assert (ctx.args.owner, ctx.args.repo) == ("octocat", "Hello-World")
    github.call.assert_not_called()


def test_sign_resolves_user_from_token(
    client: TestClient, cla_api: Mock, alice_token: dict[str, str]
) -> None:
    cla_api.sign.return_value = SignatureRecord(
        owner="octocat",
        repo="Hello-World",
        gist_url=GIST_URL,
        gist_version=GIST_VERSION,
        user="alice",
        user_id=1001,
    )

    resp = client.post(
        "/api/cla/sign", json={"owner": "octocat", "repo": "Hello-World"}, headers=alice_token
    )

    assert resp.status_code == 200
    assert resp.json()["user"] == "alice"
    ctx = cla_api.sign.call_args.args[0]
    assert ctx.user.login == "alice"
    assert ctx.user.id == 1001
    assert ctx.user.token == "alice_token"


def test_bearer_scheme_is_accepted(
    client: TestClient, cla_api: Mock, alice_token: dict[str, str]
) -> None:
    cla_api.check.return_value = CheckResult(signed=True)

    resp = client.post(
        "/api/cla/check",
        json={"owner": "octocat", "repo": "Hello-World"},
        headers={"Authorization": "Bearer alice_token"},
    )

    assert resp.status_code == 200
    assert resp.json() == {"signed": True, "user_map": None}
    assert cla_api.check.call_args.args[0].user.login == "alice"


def test_rejected_token_is_unauthorized(
    client: TestClient, cla_api: Mock, forge_routes: dict[tuple[str, str], Any]
) -> None:
    forge_routes[("user", "get")] = ForgeError("Bad credentials", status_code=401)

    resp = client.post(
        "/api/cla/sign",
        json={"owner": "octocat", "repo": "Hello-World"},
        headers={"Authorization": "token revoked"},
    )

    assert resp.status_code == 401
    cla_api.sign.assert_not_called()


@pytest.mark.parametrize(
    ("error", "status_code"),
    [
        (NotFound("Repository octocat/Spoon-Knife is not linked"), 404),
        (NotAuthenticated("Sign in with GitHub first"), 401),
        (Forbidden("mallory cannot administer octocat/Spoon-Knife"), 403),
        (RenderError("Markdown render failed"), 502),
        (SignError("Could not persist the signature"), 500),
        (CheckError("Could not check CLA state"), 500),
        (ClaError("Bad request"), 400),
        (ForgeError("GitHub is down", status_code=503), 502),
    ],
)
def test_error_mapping(
    client: TestClient, cla_api: Mock, error: Exception, status_code: int
) -> None:
    cla_api.check.side_effect = error

    resp = client.post("/api/cla/check", json={"owner": "octocat", "repo": "Spoon-Knife"})

    assert resp.status_code == status_code
    assert resp.json()["detail"] == error.message


def test_count_accepts_legacy_gist_shape(client: TestClient, cla_api: Mock) -> None:
    cla_api.count_cla.return_value = 3

    resp = client.post(
        "/api/cla/countCLA",
        json={
            "owner": "octocat",
            "repo": "Hello-World",
            "gist": {"gist_url": GIST_URL, "gist_version": GIST_VERSION},
        },
    )

    assert resp.status_code == 200
    assert resp.json() == 3
    gist = cla_api.count_cla.call_args.args[0].args.gist
    assert (gist.url, gist.version) == (GIST_URL, GIST_VERSION)


def test_invalid_pull_request_number(client: TestClient, cla_api: Mock) -> None:
    resp = client.post(
        "/api/cla/check", json={"owner": "octocat", "repo": "Hello-World", "number": 0}
    )

    assert resp.status_code == 422
    cla_api.check.assert_not_called()


def test_validate_pull_requests_reports_dispatched(client: TestClient, cla_api: Mock) -> None:
    cla_api.validate_pull_requests.return_value = 2

    resp = client.post(
        "/api/cla/validatePullRequests", json={"owner": "octocat", "repo": "Hello-World"}
    )

    assert resp.status_code == 200
    assert resp.json() == {"dispatched": 2}


def test_upload_without_users_returns_null(client: TestClient, cla_api: Mock) -> None:
    cla_api.upload.return_value = None

    resp = client.post("/api/cla/upload", json={"owner": "octocat", "repo": "Hello-World"})

    assert resp.status_code == 200
    assert resp.json() is None


def test_repo_get_hides_token(
    client: TestClient, repo_api: Mock, hello_world: RepoRecord
) -> None:
    repo_api.get.return_value = hello_world

    resp = client.post("/api/repo/get", json={"owner": "octocat", "repo": "Hello-World"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["gist"] == {"url": GIST_URL, "version": GIST_VERSION}
    assert "token" not in body


def test_repo_unlink(client: TestClient, repo_api: Mock, alice_token: dict[str, str]) -> None:
    repo_api.unlink.return_value = True

    resp = client.post(
        "/api/repo/unlink", json={"owner": "octocat", "repo": "Hello-World"}, headers=alice_token
    )

    assert resp.status_code == 200
    assert resp.json() == {"removed": True}


# Access control with the real stores and APIs


@pytest.fixture
def wired_client(settings: ClaSettings, github: Mock, hello_world: RepoRecord) -> TestClient:
    RepoStore(settings.repos_state_file).upsert(hello_world)
    components = build_components(settings, executor=Mock(spec=Executor), github=github)
    return TestClient(create_app(settings, components=components))


@pytest.fixture
def mallory_token(forge_routes: dict[tuple[str, str], Any]) -> dict[str, str]:
    forge_routes[("user", "get")] = ForgeResponse(
        status_code=200, data={"login": "mallory", "id": 66}
    )
    forge_routes[("repos", "get")] = ForgeResponse(
        status_code=200, data={"permissions": {"admin": False, "push": False, "pull": True}}
    )
    return {"Authorization": "token mallory_token"}


def test_anonymous_upload_is_rejected(
    wired_client: TestClient, settings: ClaSettings, github: Mock
) -> None:
    resp = wired_client.post(
        "/api/cla/upload", json={"owner": "octocat", "repo": "Hello-World", "users": ["victim"]}
    )

    assert resp.status_code == 401
    assert SignatureStore(settings.signatures_state_file).load() == []
    github.call.assert_not_called()


def test_upload_by_non_admin_is_forbidden(
    wired_client: TestClient, settings: ClaSettings, mallory_token: dict[str, str]
) -> None:
    resp = wired_client.post(
        "/api/cla/upload",
        json={"owner": "octocat", "repo": "Hello-World", "users": ["victim"]},
        headers=mallory_token,
    )

    assert resp.status_code == 403
    assert SignatureStore(settings.signatures_state_file).load() == []


def test_anonymous_validation_is_rejected(wired_client: TestClient, github: Mock) -> None:
    resp = wired_client.post(
        "/api/cla/validatePullRequests", json={"owner": "octocat", "repo": "Hello-World"}
    )

    assert resp.status_code == 401
    github.call.assert_not_called()


def test_relink_by_non_admin_keeps_owner_link(
    wired_client: TestClient,
    settings: ClaSettings,
    hello_world: RepoRecord,
    mallory_token: dict[str, str],
) -> None:
    resp = wired_client.post(
        "/api/repo/link",
        json={
            "owner": "octocat",
            "repo": "Hello-World",
            "gist": {"gist_url": "https://gist.github.com/mallory/evil", "gist_version": "v1"},
        },
        headers=mallory_token,
    )

    assert resp.status_code == 403
    stored = RepoStore(settings.repos_state_file).get(owner="octocat", repo="Hello-World")
    assert stored == hello_world


def test_unlink_by_non_admin_is_forbidden(
    wired_client: TestClient,
    settings: ClaSettings,
    hello_world: RepoRecord,
    mallory_token: dict[str, str],
) -> None:
    resp = wired_client.post(
        "/api/repo/unlink", json={"owner": "octocat", "repo": "Hello-World"}, headers=mallory_token
    )

    assert resp.status_code == 403
    assert RepoStore(settings.repos_state_file).list() == [hello_world]
