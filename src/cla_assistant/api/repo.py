"""Repository linking: which CLA gist applies to a repository, and with which token."""

from __future__ import annotations

import logging

from cla_assistant.api.auth import require_admin
from cla_assistant.errors import NotFound
from cla_assistant.github.client import ForgeClient
from cla_assistant.models import ClaArgs, RepoRecord, RequestContext
from cla_assistant.services.cla import ClaService
from cla_assistant.services.store import RepoStore

logger = logging.getLogger(__name__)


def _repo_key(args: ClaArgs) -> tuple[str, str]:
    if not args.owner or not args.repo:
        raise NotFound("owner and repo are required")
    return args.owner, args.repo


class RepoApi:
    def __init__(self, *, github: ForgeClient, repos: RepoStore, cla: ClaService) -> None:
        self._github = github
        self._repos = repos
        self._cla = cla

    def get(self, ctx: RequestContext) -> RepoRecord:
        args = ctx.args
        record = (
            self._repos.get(owner=args.owner, repo=args.repo) if args.owner and args.repo else None
        )
        if record is None:
            raise NotFound(f"Repository {args.owner}/{args.repo} is not linked")
        return record

    def link(self, ctx: RequestContext) -> RepoRecord:
        """Link (or re-link) a repository to a gist revision, storing the admin's token.

        A gist given without a version is pinned to its latest revision, so later edits
        of the gist only take effect after re-linking.
        """

        owner, repo = _repo_key(ctx.args)
        user = require_admin(self._github, ctx, owner=owner, repo=repo)
        if ctx.args.gist is None:
            raise NotFound("A CLA gist is required to link a repository")

        gist = self._cla.complete_gist(gist=ctx.args.gist, token=user.token)
        record = RepoRecord(owner=owner, repo=repo, gist=gist, token=user.token)
        self._repos.upsert(record)
        logger.info(
            "Repository linked to CLA",
            extra={
                "repository": record.full_name,
                "gist_version": gist.version,
                "by": user.login,
            },
        )
        return record

    def unlink(self, ctx: RequestContext) -> bool:
        owner, repo = _repo_key(ctx.args)
        require_admin(self._github, ctx, owner=owner, repo=repo)
        return self._repos.remove(owner=owner, repo=repo)
