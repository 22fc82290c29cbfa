"""CLA signature bookkeeping.

A signature only counts for a pull request when its gist URL and version match the
repository's *current* linked gist. Re-linking a repository to a new gist revision
therefore invalidates all earlier signatures for it without touching them.
"""

from __future__ import annotations

import logging
from typing import Any

from cla_assistant.errors import CheckError, ForgeError, NotFound, SignError
from cla_assistant.github.client import ForgeClient
from cla_assistant.models import CheckResult, GistRef, RepoRecord, SignatureRecord, UserMap
from cla_assistant.services.store import RepoStore, SignatureStore

logger = logging.getLogger(__name__)


class ClaService:
    """Signature records on top of the repository directory and GitHub."""

    def __init__(
        self, *, github: ForgeClient, repos: RepoStore, signatures: SignatureStore
    ) -> None:
        self._github = github
        self._repos = repos
        self._signatures = signatures

    def get_gist(self, *, gist: GistRef, token: str | None) -> dict[str, Any]:
        """Fetch the gist holding the CLA text.

        Returns:
            ``{"id", "url", "files": {name: content}, "history": [version, ...]}`` with
            the newest revision first in ``history``.

        Raises:
            ForgeError: If the gist cannot be fetched.
        """

        response = self._github.call(obj="gists", fun="get", arg={"url": gist.url}, token=token)
        data = response.data if isinstance(response.data, dict) else {}
        return data

    def complete_gist(self, *, gist: GistRef, token: str | None) -> GistRef:
        """Return ``gist`` with its version filled from the latest gist revision."""

        if gist.is_complete:
            return gist
        history = self.get_gist(gist=gist, token=token).get("history") or []
        if not history:
            raise NotFound(f"Gist has no revisions: {gist.url}")
        return gist.model_copy(update={"version": str(history[0])})

    def current_gist(self, repo: RepoRecord) -> GistRef:
        """Resolve the complete gist reference a repository is currently linked to."""

        if repo.gist is None:
            raise NotFound(f"Repository {repo.full_name} is not linked to a CLA")
        return self.complete_gist(gist=repo.gist, token=repo.token)

    def _require_repo(self, *, owner: str, repo: str) -> RepoRecord:
        record = self._repos.get(owner=owner, repo=repo)
        if record is None:
            raise NotFound(f"Repository {owner}/{repo} is not linked")
        return record

    def sign(self, *, owner: str, repo: str, user: str, user_id: int | None) -> SignatureRecord:
        """Record that ``user`` agreed to the repository's current CLA revision.

        Signing twice for the same revision returns the existing record.
        """

        record = self._require_repo(owner=owner, repo=repo)
        try:
            gist = self.current_gist(record)
            signature = self._signatures.add(
                SignatureRecord(
                    owner=owner,
                    repo=repo,
                    gist_url=gist.url,
                    gist_version=gist.version,
                    user=user,
                    user_id=user_id,
                )
            )
        except ForgeError as e:
            raise SignError(f"Could not resolve the CLA revision: {e}") from e
        except OSError as e:
            raise SignError(f"Could not persist the signature: {e}") from e

        logger.info(
            "CLA signed",
            extra={"repository": record.full_name, "user": user, "gist_version": gist.version},
        )
        return signature

    def _has_signed(self, *, owner: str, repo: str, user: str, gist: GistRef) -> bool:
        return bool(
            self._signatures.find(
                owner=owner,
                repo=repo,
                user=user,
                gist_url=gist.url,
                gist_version=gist.version,
            )
        )

    def check(
        self,
        *,
        owner: str,
        repo: str,
        user: str | None = None,
        gist: GistRef | None = None,
        number: int | None = None,
    ) -> CheckResult:
        """Determine the signed state of a user, or of every committer of a pull request.

        With ``number`` the result carries a :class:`UserMap`; the pull request counts as
        signed only when it has committers and all of them signed.
        """

        record = self._require_repo(owner=owner, repo=repo)
        try:
            if gist is None:
                gist = self.current_gist(record)
            else:
                gist = self.complete_gist(gist=gist, token=record.token)

            if number is None:
                if not user:
                    return CheckResult(signed=False)
                return CheckResult(
                    signed=self._has_signed(owner=owner, repo=repo, user=user, gist=gist)
                )

            committers = self._committers(owner=owner, repo=repo, number=number, token=record.token)
            user_map = UserMap()
            for login in committers:
                if self._has_signed(owner=owner, repo=repo, user=login, gist=gist):
                    user_map.signed.append(login)
                else:
                    user_map.not_signed.append(login)
        except ForgeError as e:
            raise CheckError(f"Could not check CLA state: {e}") from e
        except OSError as e:
            raise CheckError(f"Could not read signatures: {e}") from e

        signed = bool(committers) and not user_map.not_signed
        logger.debug(
            "Pull request checked",
            extra={"repository": record.full_name, "number": number, "signed": signed},
        )
        return CheckResult(signed=signed, user_map=user_map)

    def _committers(self, *, owner: str, repo: str, number: int, token: str | None) -> list[str]:
        response = self._github.call(
            obj="pullRequests",
            fun="getCommits",
            arg={"owner": owner, "repo": repo, "number": number},
            token=token,
        )
        commits = response.data if isinstance(response.data, list) else []
        logins: list[str] = []
        for commit in commits:
            login = _committer_login(commit)
            if login and login not in logins:
                logins.append(login)
        return logins

    def get_all(self, *, owner: str, repo: str, gist: GistRef) -> list[SignatureRecord]:
        return self._signatures.find(
            owner=owner, repo=repo, gist_url=gist.url, gist_version=gist.version
        )

    def get_last_signature(
        self, *, owner: str, repo: str, user: str, gist_url: str
    ) -> SignatureRecord | None:
        records = self._signatures.find(owner=owner, repo=repo, user=user, gist_url=gist_url)
        if not records:
            return None
        return max(records, key=lambda r: r.created_at)

    def get_signed_cla(self, *, user: str) -> list[SignatureRecord]:
        return self._signatures.find(user=user)


def _committer_login(commit: object) -> str | None:
    if not isinstance(commit, dict):
        return None
    author = commit.get("author")
    if isinstance(author, dict):
        login = author.get("login")
        if isinstance(login, str) and login.strip():
            return login
    # Commits by emails without a GitHub account only carry the git author name.
    git_commit = commit.get("commit")
    if isinstance(git_commit, dict):
        git_author = git_commit.get("author")
        if isinstance(git_author, dict):
            name = git_author.get("name")
            if isinstance(name, str) and name.strip():
                return name
    return None
