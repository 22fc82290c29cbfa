"""GitHub API adapter exposing named operations.

Callers address an operation by ``(obj, fun)`` (e.g. ``("statuses", "create")``) and pass
an operation-specific ``arg`` dict plus an optional token. REST endpoints go through a
shared ``requests.Session``; user and gist lookups go through PyGithub.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import requests
from github import Auth, Github, GithubException

from cla_assistant.errors import ForgeError
from cla_assistant.urls import gist_id

logger = logging.getLogger(__name__)

_PER_PAGE = 100


@dataclass(frozen=True, slots=True)
class ForgeResponse:
    """Outcome of a named GitHub call."""

    status_code: int | None
    data: Any = None
    message: str | None = None
    has_next_page: bool = False


Handler = Callable[[dict[str, Any], str | None], ForgeResponse]
GithubFactory = Callable[[str | None], Github]


class ForgeClient:
    """Dispatches named GitHub operations.

    Supported operations:
    - statuses/create
    - pullRequests/getAll, pullRequests/get, pullRequests/getCommits
    - issues/getComments, issues/createComment, issues/editComment
    - markdown/render
    - repos/get
    - user/get, user/getFrom
    - gists/get
    """

    def __init__(
        self,
        *,
        base_url: str = "https://api.github.com",
        session: requests.Session | None = None,
        github_factory: GithubFactory | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._rest_base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
                "User-Agent": "cla-assistant",
            }
        )
        self._github_factory = github_factory or self._default_github

        self._handlers: dict[tuple[str, str], Handler] = {
            ("repos", "get"): self._get_repository,
            ("statuses", "create"): self._create_status,
            ("pullRequests", "getAll"): self._list_pull_requests,
            ("pullRequests", "get"): self._get_pull_request,
            ("pullRequests", "getCommits"): self._list_pull_request_commits,
            ("issues", "getComments"): self._list_issue_comments,
            ("issues", "createComment"): self._create_issue_comment,
            ("issues", "editComment"): self._edit_issue_comment,
            ("markdown", "render"): self._render_markdown,
            ("user", "get"): self._get_authenticated_user,
            ("user", "getFrom"): self._get_user_from,
            ("gists", "get"): self._get_gist,
        }

    def call(
        self,
        *,
        obj: str,
        fun: str,
        arg: dict[str, Any] | None = None,
        token: str | None = None,
    ) -> ForgeResponse:
        """Invoke the named operation.

        Raises:
            ValueError: If the operation is unknown.
            ForgeError: If GitHub could not be reached or answered with an error.
        """

        handler = self._handlers.get((obj, fun))
        if handler is None:
            raise ValueError(f"Unsupported GitHub operation: {obj}.{fun}")
        logger.debug("GitHub call", extra={"obj": obj, "fun": fun, "authenticated": bool(token)})
        return handler(arg or {}, token)

    def close(self) -> None:
        self._session.close()

    # REST plumbing

    def _repo_url(self, arg: dict[str, Any], path: str = "") -> str:
        owner = str(arg.get("owner") or "").strip()
        repo = str(arg.get("repo") or "").strip().rstrip("/")
        if not owner or not repo:
            raise ValueError("owner and repo are required")
        path = path.lstrip("/")
        base = f"{self._rest_base_url}/repos/{owner}/{repo}"
        return f"{base}/{path}" if path else base

    @staticmethod
    def _number(arg: dict[str, Any], key: str = "number") -> int:
        value = arg.get(key)
        if not isinstance(value, int) or value <= 0:
            raise ValueError(f"{key} must be a positive integer")
        return value

    def _request(
        self,
        method: str,
        url: str,
        token: str | None,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> ForgeResponse:
        headers = {"Authorization": f"token {token}"} if token else {}
        try:
            resp = self._session.request(
                method,
                url,
                headers=headers,
                params=params,
                json=json,
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise ForgeError(f"GitHub request failed: {e}") from e

        response = self._to_response(resp)
        if resp.status_code >= 400:
            raise ForgeError(
                response.message or f"GitHub answered {resp.status_code}",
                status_code=resp.status_code,
                response=response,
            )
        return response

    @staticmethod
    def _to_response(resp: requests.Response) -> ForgeResponse:
        data: Any
        content_type = resp.headers.get("Content-Type", "")
        if "json" in content_type:
            try:
                data = resp.json()
            except ValueError:
                data = resp.text
        else:
            data = resp.text

        message = None
        if isinstance(data, dict):
            raw_message = data.get("message")
            if isinstance(raw_message, str) and raw_message.strip():
                message = raw_message

        return ForgeResponse(
            status_code=resp.status_code,
            data=data,
            message=message,
            has_next_page="next" in (resp.links or {}),
        )

    def _get_all_pages(self, url: str, token: str | None) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        page = 1
        while True:
            response = self._request(
                "GET", url, token, params={"per_page": _PER_PAGE, "page": page}
            )
            if not isinstance(response.data, list):
                return items
            items.extend(p for p in response.data if isinstance(p, dict))
            if not response.has_next_page:
                return items
            page += 1

    # Operations

    def _get_repository(self, arg: dict[str, Any], token: str | None) -> ForgeResponse:
        # `permissions` is only present for authenticated requests.
        return self._request("GET", self._repo_url(arg), token)

    def _create_status(self, arg: dict[str, Any], token: str | None) -> ForgeResponse:
        sha = str(arg.get("sha") or "").strip()
        if not sha:
            raise ValueError("sha is required")
        payload = {
            key: arg[key]
            for key in ("state", "description", "target_url", "context")
            if arg.get(key) is not None
        }
        return self._request("POST", self._repo_url(arg, f"statuses/{sha}"), token, json=payload)

    def _list_pull_requests(self, arg: dict[str, Any], token: str | None) -> ForgeResponse:
        params = {
            "state": arg.get("state", "open"),
            "per_page": arg.get("per_page", _PER_PAGE),
            "page": arg.get("page", 1),
        }
        return self._request("GET", self._repo_url(arg, "pulls"), token, params=params)

    def _get_pull_request(self, arg: dict[str, Any], token: str | None) -> ForgeResponse:
        number = self._number(arg)
        return self._request("GET", self._repo_url(arg, f"pulls/{number}"), token)

    def _list_pull_request_commits(self, arg: dict[str, Any], token: str | None) -> ForgeResponse:
        number = self._number(arg)
        commits = self._get_all_pages(self._repo_url(arg, f"pulls/{number}/commits"), token)
        return ForgeResponse(status_code=200, data=commits)

    def _list_issue_comments(self, arg: dict[str, Any], token: str | None) -> ForgeResponse:
        number = self._number(arg)
        comments = self._get_all_pages(self._repo_url(arg, f"issues/{number}/comments"), token)
        return ForgeResponse(status_code=200, data=comments)

    def _create_issue_comment(self, arg: dict[str, Any], token: str | None) -> ForgeResponse:
        number = self._number(arg)
        url = self._repo_url(arg, f"issues/{number}/comments")
        return self._request("POST", url, token, json={"body": str(arg.get("body") or "")})

    def _edit_issue_comment(self, arg: dict[str, Any], token: str | None) -> ForgeResponse:
        comment_id = self._number(arg, "id")
        url = self._repo_url(arg, f"issues/comments/{comment_id}")
        return self._request("PATCH", url, token, json={"body": str(arg.get("body") or "")})

    def _render_markdown(self, arg: dict[str, Any], token: str | None) -> ForgeResponse:
        payload: dict[str, Any] = {
            "text": str(arg.get("text") or ""),
            "mode": arg.get("mode", "gfm"),
        }
        if arg.get("context"):
            payload["context"] = arg["context"]
        return self._request("POST", f"{self._rest_base_url}/markdown", token, json=payload)

    # PyGithub-backed operations

    def _default_github(self, token: str | None) -> Github:
        if token:
            return Github(auth=Auth.Token(token), base_url=self._rest_base_url)
        return Github(base_url=self._rest_base_url)

    def _with_github(
        self, token: str | None, fn: Callable[[Github], dict[str, Any]]
    ) -> ForgeResponse:
        gh = self._github_factory(token)
        try:
            return ForgeResponse(status_code=200, data=fn(gh))
        except GithubException as e:
            message = _github_exception_message(e)
            raise ForgeError(
                message,
                status_code=e.status,
                response=ForgeResponse(status_code=e.status, data=e.data, message=message),
            ) from e
        finally:
            gh.close()

    def _get_authenticated_user(self, arg: dict[str, Any], token: str | None) -> ForgeResponse:
        if not token:
            raise ForgeError("A token is required to resolve the user", status_code=401)

        def fetch(gh: Github) -> dict[str, Any]:
            user = gh.get_user()
            return {"id": user.id, "login": user.login}

        return self._with_github(token, fetch)

    def _get_user_from(self, arg: dict[str, Any], token: str | None) -> ForgeResponse:
        login = str(arg.get("user") or "").strip()
        if not login:
            raise ValueError("user is required")

        def fetch(gh: Github) -> dict[str, Any]:
            user = gh.get_user(login)
            return {"id": user.id, "login": user.login}

        return self._with_github(token, fetch)

    def _get_gist(self, arg: dict[str, Any], token: str | None) -> ForgeResponse:
        url = str(arg.get("url") or arg.get("id") or "").strip()
        if not url:
            raise ValueError("gist url is required")

        def fetch(gh: Github) -> dict[str, Any]:
            gist = gh.get_gist(gist_id(url))
            return {
                "id": gist.id,
                "url": gist.html_url,
                "files": {name: f.content for name, f in gist.files.items()},
                "history": [state.version for state in gist.history],
            }

        return self._with_github(token, fetch)


def _github_exception_message(e: GithubException) -> str:
    data = e.data
    if isinstance(data, dict):
        message = data.get("message")
        if isinstance(message, str) and message.strip():
            return message
    return str(e)
