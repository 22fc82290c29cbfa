"""Summary comment on pull requests.

Each pull request carries at most one CLA comment, recognised by a hidden marker.
The comment is created on first use and edited in place afterwards.
"""

from __future__ import annotations

import logging

from cla_assistant.errors import ForgeError
from cla_assistant.github.client import ForgeClient
from cla_assistant.models import UserMap
from cla_assistant.services.store import RepoStore
from cla_assistant.urls import cla_url

logger = logging.getLogger(__name__)

COMMENT_MARKER = "<!-- cla-assistant: summary -->"


def render_comment(*, url: str, signed: bool, user_map: UserMap | None = None) -> str:
    """Build the markdown body of the summary comment."""

    if signed:
        return f"{COMMENT_MARKER}\nAll committers have signed the CLA. :+1:\n"

    lines = [
        COMMENT_MARKER,
        "Thank you for your submission! We really appreciate it. Like many open source "
        "projects, we ask that you sign our "
        f"[Contributor License Agreement]({url}) before we can accept your contribution.",
    ]
    if user_map is not None and (user_map.signed or user_map.not_signed):
        done = len(user_map.signed)
        total = done + len(user_map.not_signed)
        lines.append("")
        lines.append(f"**{done}** out of **{total}** committers have signed the CLA.")
        lines.append("")
        lines.extend(f":white_check_mark: {login}" for login in user_map.signed)
        lines.extend(f":x: {login}" for login in user_map.not_signed)
    return "\n".join(lines) + "\n"


class PullRequestService:
    """Creates or edits the CLA summary comment on a pull request (best-effort)."""

    def __init__(self, *, github: ForgeClient, repos: RepoStore, app_base_url: str) -> None:
        self._github = github
        self._repos = repos
        self._app_base_url = app_base_url

    def _find_comment_id(
        self, *, owner: str, repo: str, number: int, token: str | None
    ) -> int | None:
        response = self._github.call(
            obj="issues",
            fun="getComments",
            arg={"owner": owner, "repo": repo, "number": number},
            token=token,
        )
        comments = response.data if isinstance(response.data, list) else []
        for comment in comments:
            if not isinstance(comment, dict):
                continue
            body = comment.get("body")
            comment_id = comment.get("id")
            if isinstance(body, str) and COMMENT_MARKER in body and isinstance(comment_id, int):
                return comment_id
        return None

    def edit_comment(
        self,
        *,
        owner: str,
        repo: str,
        number: int,
        signed: bool,
        user_map: UserMap | None = None,
    ) -> None:
        record = self._repos.get(owner=owner, repo=repo)
        token = record.token if record is not None else None
        body = render_comment(
            url=cla_url(self._app_base_url, owner, repo, number),
            signed=signed,
            user_map=user_map,
        )
        arg = {"owner": owner, "repo": repo, "number": number, "body": body}

        try:
            comment_id = self._find_comment_id(owner=owner, repo=repo, number=number, token=token)
            if comment_id is None:
                self._github.call(obj="issues", fun="createComment", arg=arg, token=token)
            else:
                self._github.call(
                    obj="issues", fun="editComment", arg={**arg, "id": comment_id}, token=token
                )
        except ForgeError as e:
            logger.warning(
                "Could not write CLA comment",
                extra={"repository": f"{owner}/{repo}", "number": number, "error": str(e)},
            )
