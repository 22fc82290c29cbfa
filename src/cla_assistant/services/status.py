"""Commit status propagation for pull requests."""

from __future__ import annotations

import logging

from cla_assistant.errors import ForgeError
from cla_assistant.github.client import ForgeClient
from cla_assistant.services.store import RepoStore
from cla_assistant.urls import cla_url

logger = logging.getLogger(__name__)

SIGNED_DESCRIPTION = "Contributor License Agreement is signed."
NOT_SIGNED_DESCRIPTION = "Contributor License Agreement is not signed yet."


class StatusService:
    """Writes the CLA commit status onto the head commit of a pull request.

    Status updates are annotations only: every failure is logged and swallowed.
    """

    def __init__(
        self,
        *,
        github: ForgeClient,
        repos: RepoStore,
        app_base_url: str,
        context: str = "licence/cla",
    ) -> None:
        self._github = github
        self._repos = repos
        self._app_base_url = app_base_url
        self._context = context

    def update(self, *, owner: str, repo: str, number: int, signed: bool) -> None:
        record = self._repos.get(owner=owner, repo=repo)
        token = record.token if record is not None else None

        try:
            response = self._github.call(
                obj="pullRequests",
                fun="get",
                arg={"owner": owner, "repo": repo, "number": number},
                token=token,
            )
        except ForgeError as e:
            logger.debug(
                "Pull request not readable; status left untouched",
                extra={"repository": f"{owner}/{repo}", "number": number, "error": str(e)},
            )
            return

        sha = _head_sha(response.data)
        if sha is None:
            return

        try:
            self._github.call(
                obj="statuses",
                fun="create",
                arg={
                    "owner": owner,
                    "repo": repo,
                    "sha": sha,
                    "state": "success" if signed else "pending",
                    "description": SIGNED_DESCRIPTION if signed else NOT_SIGNED_DESCRIPTION,
                    "target_url": cla_url(self._app_base_url, owner, repo, number),
                    "context": self._context,
                },
                token=token,
            )
        except ForgeError as e:
            logger.warning(
                "Error on create status, the stored token may lack the required scope",
                extra={
                    "repository": f"{owner}/{repo}",
                    "number": number,
                    "sha": sha,
                    "error": str(e),
                },
            )
            return

        logger.info(
            "Commit status updated",
            extra={"repository": f"{owner}/{repo}", "number": number, "signed": signed},
        )


def _head_sha(pull_request: object) -> str | None:
    if not isinstance(pull_request, dict):
        return None
    head = pull_request.get("head")
    if not isinstance(head, dict):
        return None
    sha = head.get("sha")
    if not isinstance(sha, str) or not sha.strip():
        return None
    return sha
