"""Test configuration and fixtures."""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import Executor, Future
from pathlib import Path
from typing import Any
from unittest.mock import Mock

import pytest

from cla_assistant.api.cla import ClaApi
from cla_assistant.config import ClaSettings
from cla_assistant.github.client import ForgeClient, ForgeResponse
from cla_assistant.models import GistRef, RepoRecord
from cla_assistant.services.cla import ClaService
from cla_assistant.services.pull_request import PullRequestService
from cla_assistant.services.status import StatusService
from cla_assistant.services.store import RepoStore

GIST_URL = "https://gist.github.com/octocat/aa5a315d61ae9438b18d"
GIST_VERSION = "57a7f021a713b1c5a6a199b54cc514735d2d462f"


class InlineExecutor(Executor):
    """Runs submitted work immediately so fan-out is observable in tests."""

    def __init__(self) -> None:
        self.submitted = 0

    def submit(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Future[Any]:
        self.submitted += 1
        future: Future[Any] = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except BaseException as e:  # noqa: BLE001 (mirrors a real executor)
            future.set_exception(e)
        return future


@pytest.fixture
def hello_world() -> RepoRecord:
    return RepoRecord(
        owner="octocat",
        repo="Hello-World",
        gist=GistRef(url=GIST_URL, version=GIST_VERSION),
        token="repo_token",
    )


@pytest.fixture
def forge_routes() -> dict[tuple[str, str], Any]:
    """Outcomes of GitHub calls keyed by (obj, fun).

    A value may be a ForgeResponse, an exception to raise, or a list of those which
    is consumed one item per call.
    """

    return {}


@pytest.fixture
def github(forge_routes: dict[tuple[str, str], Any]) -> Mock:
    mock = Mock(spec=ForgeClient)

    def call(
        *, obj: str, fun: str, arg: dict[str, Any] | None = None, token: str | None = None
    ) -> ForgeResponse:
        outcome = forge_routes[(obj, fun)]
        if isinstance(outcome, list):
            outcome = outcome.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    mock.call.side_effect = call
    return mock


@pytest.fixture
def repos(hello_world: RepoRecord) -> Mock:
    mock = Mock(spec=RepoStore)
    mock.get.return_value = hello_world
    return mock


@pytest.fixture
def cla() -> Mock:
    return Mock(spec=ClaService)


@pytest.fixture
def status() -> Mock:
    return Mock(spec=StatusService)


@pytest.fixture
def pull_requests() -> Mock:
    return Mock(spec=PullRequestService)


@pytest.fixture
def executor() -> InlineExecutor:
    return InlineExecutor()


@pytest.fixture
def api(
    github: Mock,
    repos: Mock,
    cla: Mock,
    status: Mock,
    pull_requests: Mock,
    executor: InlineExecutor,
) -> ClaApi:
    return ClaApi(
        github=github,
        repos=repos,
        cla=cla,
        status=status,
        pull_requests=pull_requests,
        executor=executor,
    )


@pytest.fixture
def settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ClaSettings:
    for name in (
        "CLA_GITHUB_TOKEN",
        "CLA_APP_BASE_URL",
        "CLA_STATE_PATH",
        "CLA_STATUS_CONTEXT",
        "CLA_FANOUT_WORKERS",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return ClaSettings(
        app_base_url="https://cla.example.org",
        state_path=tmp_path / "cla_state",
    )
