"""Caller identity and repository administration checks.

Administrative operations (linking, bulk upload, pull request re-validation) act with
the repository's stored token, so they are limited to users GitHub reports as
repository admins.
"""

from __future__ import annotations

import logging

from cla_assistant.errors import Forbidden, ForgeError, NotAuthenticated
from cla_assistant.github.client import ForgeClient
from cla_assistant.models import AuthenticatedUser, RequestContext

logger = logging.getLogger(__name__)


def resolve_user(github: ForgeClient, token: str | None) -> AuthenticatedUser:
    """Return the GitHub user a token belongs to.

    Raises:
        NotAuthenticated: If no token is given or GitHub rejects it.
    """

    if not token:
        raise NotAuthenticated("A GitHub token is required")
    try:
        response = github.call(obj="user", fun="get", token=token)
    except ForgeError as e:
        raise NotAuthenticated("GitHub rejected the token") from e
    data = response.data if isinstance(response.data, dict) else {}
    login, user_id = data.get("login"), data.get("id")
    if not isinstance(login, str) or not isinstance(user_id, int):
        raise NotAuthenticated("GitHub rejected the token")
    return AuthenticatedUser(login=login, id=user_id, token=token)


def require_admin(
    github: ForgeClient, ctx: RequestContext, *, owner: str, repo: str
) -> AuthenticatedUser:
    """Ensure the caller administers ``owner/repo``.

    Raises:
        NotAuthenticated: If the request carries no user token.
        Forbidden: If GitHub does not grant the user admin permission on the repository.
    """

    user = ctx.user
    if user is None or not user.token:
        raise NotAuthenticated("Sign in with GitHub first")

    try:
        response = github.call(
            obj="repos", fun="get", arg={"owner": owner, "repo": repo}, token=user.token
        )
    except ForgeError as e:
        # GitHub hides repositories the user cannot see behind a 404.
        if e.status_code in (403, 404):
            raise Forbidden(f"{user.login} cannot administer {owner}/{repo}") from e
        raise

    data = response.data if isinstance(response.data, dict) else {}
    permissions = data.get("permissions")
    if not isinstance(permissions, dict) or permissions.get("admin") is not True:
        logger.warning(
            "Administrative operation refused",
            extra={"repository": f"{owner}/{repo}", "user": user.login},
        )
        raise Forbidden(f"{user.login} cannot administer {owner}/{repo}")
    return user
