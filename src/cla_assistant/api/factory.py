"""Wiring of the CLA services from settings."""

from __future__ import annotations

import logging
from concurrent.futures import Executor
from dataclasses import dataclass

from cla_assistant.api.cla import ClaApi
from cla_assistant.api.repo import RepoApi
from cla_assistant.config import ClaSettings
from cla_assistant.github.client import ForgeClient
from cla_assistant.services.cla import ClaService
from cla_assistant.services.pull_request import PullRequestService
from cla_assistant.services.status import StatusService
from cla_assistant.services.store import RepoStore, SignatureStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Components:
    github: ForgeClient
    cla: ClaApi
    repos: RepoApi


def build_components(
    settings: ClaSettings,
    *,
    executor: Executor,
    github: ForgeClient | None = None,
) -> Components:
    """Wire the APIs on top of the file stores under ``settings.state_path``.

    Args:
        settings: Loaded settings.
        executor: Runs per pull request updates; owned by the caller.
        github: GitHub adapter to use. Defaults to one for ``settings.github_base_url``.
    """
    logger.info("Wiring CLA services", extra={"state_path": str(settings.state_path)})

    github = github or ForgeClient(base_url=settings.github_base_url)
    repos = RepoStore(settings.repos_state_file)
    signatures = SignatureStore(settings.signatures_state_file)
    cla_service = ClaService(github=github, repos=repos, signatures=signatures)

    cla_api = ClaApi(
        github=github,
        repos=repos,
        cla=cla_service,
        status=StatusService(
            github=github,
            repos=repos,
            app_base_url=settings.app_base_url,
            context=settings.status_context,
        ),
        pull_requests=PullRequestService(
            github=github, repos=repos, app_base_url=settings.app_base_url
        ),
        executor=executor,
    )
    return Components(
        github=github,
        cla=cla_api,
        repos=RepoApi(github=github, repos=repos, cla=cla_service),
    )
