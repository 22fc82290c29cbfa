"""CLA operations exposed to the REST API and the CLI.

Each operation is a short sequential pipeline over the repository directory, the CLA
service and GitHub. After a signature (or on explicit validation) open pull requests are
re-checked; those per pull request updates run on an executor and are never awaited.

Token precedence for GitHub calls: authenticated user > repository stored token > none.
Bulk upload and pull request re-validation are restricted to repository admins.
"""

from __future__ import annotations

import logging
from concurrent.futures import Executor
from typing import Any

from cla_assistant.api.auth import require_admin
from cla_assistant.errors import ForgeError, NotAuthenticated, NotFound, RenderError
from cla_assistant.github.client import ForgeClient, ForgeResponse
from cla_assistant.models import (
    AuthenticatedUser,
    CheckResult,
    ClaArgs,
    GistRef,
    RenderedCla,
    RepoRecord,
    RequestContext,
    SignatureRecord,
)
from cla_assistant.services.cla import ClaService
from cla_assistant.services.pull_request import PullRequestService
from cla_assistant.services.status import StatusService
from cla_assistant.services.store import RepoStore

logger = logging.getLogger(__name__)


class ClaApi:
    """Orchestrates signing, checking and pull request propagation."""

    def __init__(
        self,
        *,
        github: ForgeClient,
        repos: RepoStore,
        cla: ClaService,
        status: StatusService,
        pull_requests: PullRequestService,
        executor: Executor,
    ) -> None:
        self._github = github
        self._repos = repos
        self._cla = cla
        self._status = status
        self._pull_requests = pull_requests
        self._executor = executor

    # Resolution helpers

    @staticmethod
    def _repo_key(args: ClaArgs) -> tuple[str, str]:
        if not args.owner or not args.repo:
            raise NotFound("owner and repo are required")
        return args.owner, args.repo

    def _find_repo(self, args: ClaArgs) -> RepoRecord | None:
        if not args.owner or not args.repo:
            return None
        return self._repos.get(owner=args.owner, repo=args.repo)

    @staticmethod
    def _token(ctx: RequestContext, repo: RepoRecord | None) -> str | None:
        if ctx.user is not None and ctx.user.token:
            return ctx.user.token
        if repo is not None and repo.token:
            return repo.token
        return None

    @staticmethod
    def _resolve_gist(args: ClaArgs, repo: RepoRecord | None) -> GistRef:
        if args.gist is not None:
            return args.gist
        if repo is not None and repo.gist is not None:
            return repo.gist
        raise NotFound("No CLA gist is linked to this repository")

    @staticmethod
    def _require_user(ctx: RequestContext) -> AuthenticatedUser:
        if ctx.user is None:
            raise NotAuthenticated("Sign in with GitHub first")
        return ctx.user

    @staticmethod
    def _user_login(ctx: RequestContext) -> str:
        if ctx.args.user:
            return ctx.args.user
        if ctx.user is not None:
            return ctx.user.login
        raise NotAuthenticated("A user is required")

    # Operations

    def get_gist(self, ctx: RequestContext) -> dict[str, Any]:
        repo = self._find_repo(ctx.args)
        gist = self._resolve_gist(ctx.args, repo)
        return self._cla.get_gist(gist=gist, token=self._token(ctx, repo))

    def get(self, ctx: RequestContext) -> RenderedCla:
        """Fetch the CLA text and render it to HTML through GitHub markdown."""

        repo = self._find_repo(ctx.args)
        gist = self._resolve_gist(ctx.args, repo)
        token = self._token(ctx, repo)

        try:
            gist_data = self._cla.get_gist(gist=gist, token=token)
        except ForgeError as e:
            raise NotFound(f"CLA gist could not be fetched: {e}") from e

        files = gist_data.get("files")
        if not isinstance(files, dict) or not files:
            logger.info("CLA gist has no files", extra={"gist_url": gist.url})
            return RenderedCla()
        raw = str(next(iter(files.values())) or "")

        response = self._render(raw, token=token)
        # Non-200 without a message is treated as an empty render, not an error.
        if response.status_code != 200 and response.message:
            raise RenderError(response.message)
        html = response.data if isinstance(response.data, str) else ""
        return RenderedCla(raw=raw, html=html)

    def _render(self, text: str, *, token: str | None) -> ForgeResponse:
        try:
            return self._github.call(
                obj="markdown", fun="render", arg={"text": text, "mode": "gfm"}, token=token
            )
        except ForgeError as e:
            if e.response is not None and e.response.status_code == 200:
                logger.warning("Markdown render reported an error with a 200 response")
                return e.response
            logger.error("Markdown render failed", extra={"error": str(e)})
            message = e.response.message if e.response is not None else None
            raise RenderError(message or e.message) from e

    def sign(self, ctx: RequestContext) -> SignatureRecord:
        """Sign the CLA as the authenticated user, then refresh the user's open PRs."""

        user = self._require_user(ctx)
        owner, repo_name = self._repo_key(ctx.args)

        signature = self._cla.sign(owner=owner, repo=repo_name, user=user.login, user_id=user.id)

        repo = self._repos.get(owner=owner, repo=repo_name)
        token = repo.token if repo is not None and repo.token else user.token
        try:
            pulls = self._open_pull_requests(owner=owner, repo=repo_name, token=token)
        except ForgeError as e:
            logger.warning(
                "Could not list open pull requests after sign",
                extra={"repository": f"{owner}/{repo_name}", "error": str(e)},
            )
            return signature

        for pull in pulls:
            if _author(pull) == user.login:
                self._dispatch_update(owner=owner, repo=repo_name, number=pull["number"])
        return signature

    def check(self, ctx: RequestContext) -> CheckResult:
        owner, repo_name = self._repo_key(ctx.args)
        user = ctx.args.user or (ctx.user.login if ctx.user is not None else None)
        return self._cla.check(
            owner=owner,
            repo=repo_name,
            user=user,
            gist=ctx.args.gist,
            number=ctx.args.number,
        )

    def get_all(self, ctx: RequestContext) -> list[SignatureRecord]:
        owner, repo_name = self._repo_key(ctx.args)
        gist = self._resolve_gist(ctx.args, self._find_repo(ctx.args))
        return self._cla.get_all(owner=owner, repo=repo_name, gist=gist)

    def count_cla(self, ctx: RequestContext) -> int:
        """Count signatures of the exact gist revision (version backfilled when missing)."""

        owner, repo_name = self._repo_key(ctx.args)
        repo = self._find_repo(ctx.args)
        gist = self._resolve_gist(ctx.args, repo)

        if not gist.is_complete:
            stored = repo.gist if repo is not None else None
            if stored is not None and stored.url == gist.url and stored.is_complete:
                gist = gist.model_copy(update={"version": stored.version})
            else:
                gist = self._cla.complete_gist(gist=gist, token=self._token(ctx, repo))

        return len(self._cla.get_all(owner=owner, repo=repo_name, gist=gist))

    def get_last_signature(self, ctx: RequestContext) -> SignatureRecord | None:
        owner, repo_name = self._repo_key(ctx.args)
        repo = self._find_repo(ctx.args)
        if repo is None or repo.gist is None:
            raise NotFound(f"Repository {owner}/{repo_name} is not linked to a CLA")
        return self._cla.get_last_signature(
            owner=owner, repo=repo_name, user=self._user_login(ctx), gist_url=repo.gist.url
        )

    def get_signed_cla(self, ctx: RequestContext) -> list[SignatureRecord]:
        return self._cla.get_signed_cla(user=self._user_login(ctx))

    def upload(self, ctx: RequestContext) -> list[SignatureRecord] | None:
        """Record signatures on behalf of GitHub logins (e.g. from paper CLAs).

        Requires a repository admin. Logins GitHub cannot resolve are skipped. The
        returned list holds one record per login that was signed, so callers can tell
        which ones were skipped.
        """

        user = self._require_user(ctx)
        if not ctx.args.users:
            return None

        owner, repo_name = self._repo_key(ctx.args)
        require_admin(self._github, ctx, owner=owner, repo=repo_name)
        token = user.token

        signatures: list[SignatureRecord] = []
        for login in ctx.args.users:
            user_id = self._lookup_user_id(login, token=token)
            if user_id is None:
                continue
            signatures.append(
                self._cla.sign(owner=owner, repo=repo_name, user=login, user_id=user_id)
            )
        logger.info(
            "CLA upload finished",
            extra={
                "repository": f"{owner}/{repo_name}",
                "requested": len(ctx.args.users),
                "signed": len(signatures),
            },
        )
        return signatures

    def _lookup_user_id(self, login: str, *, token: str | None) -> int | None:
        try:
            response = self._github.call(
                obj="user", fun="getFrom", arg={"user": login}, token=token
            )
        except ForgeError as e:
            logger.warning("Skipping unknown GitHub user", extra={"login": login, "error": str(e)})
            return None
        data = response.data if isinstance(response.data, dict) else {}
        user_id = data.get("id")
        if not isinstance(user_id, int):
            logger.warning("Skipping unknown GitHub user", extra={"login": login})
            return None
        return user_id

    def validate_pull_requests(self, ctx: RequestContext) -> int:
        """Re-check every open pull request of a repository.

        Requires a repository admin. Pull requests are listed with ``args.token`` when
        given, else with the admin's token.

        Returns:
            The number of pull requests an update was dispatched for.
        """

        owner, repo_name = self._repo_key(ctx.args)
        user = require_admin(self._github, ctx, owner=owner, repo=repo_name)
        token = ctx.args.token or user.token

        pulls = self._open_pull_requests(owner=owner, repo=repo_name, token=token)
        for pull in pulls:
            self._dispatch_update(owner=owner, repo=repo_name, number=pull["number"])
        logger.info(
            "Pull request validation dispatched",
            extra={"repository": f"{owner}/{repo_name}", "pull_requests": len(pulls)},
        )
        return len(pulls)

    # Pull request propagation

    def _open_pull_requests(
        self, *, owner: str, repo: str, token: str | None
    ) -> list[dict[str, Any]]:
        pulls: list[dict[str, Any]] = []
        page = 1
        while True:
            response = self._github.call(
                obj="pullRequests",
                fun="getAll",
                arg={"owner": owner, "repo": repo, "state": "open", "per_page": 100, "page": page},
                token=token,
            )
            data = response.data if isinstance(response.data, list) else []
            pulls.extend(
                p for p in data if isinstance(p, dict) and isinstance(p.get("number"), int)
            )
            if not response.has_next_page:
                return pulls
            page += 1

    def _dispatch_update(self, *, owner: str, repo: str, number: int) -> None:
        self._executor.submit(self._update_pull_request, owner=owner, repo=repo, number=number)

    def _update_pull_request(self, *, owner: str, repo: str, number: int) -> None:
        try:
            result = self._cla.check(owner=owner, repo=repo, number=number)
            self._status.update(owner=owner, repo=repo, number=number, signed=result.signed)
            self._pull_requests.edit_comment(
                owner=owner,
                repo=repo,
                number=number,
                signed=result.signed,
                user_map=result.user_map,
            )
        except Exception:
            logger.exception(
                "Pull request update failed",
                extra={"repository": f"{owner}/{repo}", "number": number},
            )


def _author(pull: dict[str, Any]) -> str | None:
    user = pull.get("user")
    if isinstance(user, dict):
        login = user.get("login")
        if isinstance(login, str):
            return login
    return None
