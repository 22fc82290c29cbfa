"""CLI entrypoint for the CLA assistant.

Runs the REST server, or the administrative operations directly against the local
state (re-validating pull requests, counting signatures, uploading signatures).
"""

from __future__ import annotations

import argparse
import logging
import sys
from concurrent.futures import ThreadPoolExecutor

from pydantic import ValidationError

from cla_assistant import __version__
from cla_assistant.api.auth import resolve_user
from cla_assistant.api.factory import build_components
from cla_assistant.config import ClaSettings
from cla_assistant.errors import ClaError, ForgeError
from cla_assistant.logging import configure_logging
from cla_assistant.models import ClaArgs, GistRef, RequestContext

logger = logging.getLogger(__name__)


def _parse_repository(value: str) -> tuple[str, str]:
    owner, sep, repo = value.strip().strip("/").partition("/")
    if not sep or not owner or not repo or "/" in repo:
        raise argparse.ArgumentTypeError("repository must be in the form 'owner/repo'")
    return owner, repo


def _parse_users(value: str) -> list[str]:
    return [p.strip() for p in value.split(",") if p.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cla-assistant",
        description="Contributor License Agreement enforcement for GitHub pull requests",
    )
    parser.add_argument("--version", action="version", version=f"cla-assistant {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("serve", help="Run the REST API server")

    validate = subparsers.add_parser(
        "validate-prs", help="Re-check the CLA state of every open pull request"
    )
    validate.add_argument(
        "--repo",
        "--repository",
        dest="repository",
        type=_parse_repository,
        required=True,
        help="Target repository in the form 'owner/repo'",
    )
    validate.add_argument(
        "--token",
        default=None,
        help="GitHub token of a repository admin (defaults to CLA_GITHUB_TOKEN)",
    )

    count = subparsers.add_parser("count", help="Count signatures of the linked CLA")
    count.add_argument(
        "--repo",
        "--repository",
        dest="repository",
        type=_parse_repository,
        required=True,
        help="Target repository in the form 'owner/repo'",
    )
    count.add_argument(
        "--gist-url",
        default=None,
        help="Count signatures of this gist instead of the linked one",
    )

    upload = subparsers.add_parser(
        "upload", help="Record signatures for GitHub logins (e.g. from signed paper CLAs)"
    )
    upload.add_argument(
        "--repo",
        "--repository",
        dest="repository",
        type=_parse_repository,
        required=True,
        help="Target repository in the form 'owner/repo'",
    )
    upload.add_argument(
        "--users",
        type=_parse_users,
        required=True,
        help="Comma-separated GitHub logins, e.g. 'alice,bob'",
    )
    upload.add_argument(
        "--token",
        default=None,
        help="GitHub token of a repository admin (defaults to CLA_GITHUB_TOKEN)",
    )
    return parser


def _serve(settings: ClaSettings) -> int:
    import uvicorn

    from cla_assistant.server.app import create_app

    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_config=None)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = ClaSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings.log_level)

    if args.command == "serve":
        return _serve(settings)

    executor = ThreadPoolExecutor(
        max_workers=settings.fanout_workers, thread_name_prefix="cla-fanout"
    )
    components = build_components(settings, executor=executor)
    owner, repo = args.repository
    try:
        if args.command == "validate-prs":
            user = resolve_user(components.github, args.token or settings.github_token)
            ctx = RequestContext(user=user, args=ClaArgs(owner=owner, repo=repo))
            dispatched = components.cla.validate_pull_requests(ctx)
            print(f"Validating {dispatched} open pull request(s) in {owner}/{repo}")
            return 0

        if args.command == "count":
            gist = GistRef(url=args.gist_url) if args.gist_url else None
            ctx = RequestContext(args=ClaArgs(owner=owner, repo=repo, gist=gist))
            print(components.cla.count_cla(ctx))
            return 0

        if args.command == "upload":
            user = resolve_user(components.github, args.token or settings.github_token)
            ctx = RequestContext(user=user, args=ClaArgs(owner=owner, repo=repo, users=args.users))
            signatures = components.cla.upload(ctx) or []
            signed = {s.user for s in signatures}
            skipped = [u for u in args.users if u not in signed]
            print(f"Signed {len(signatures)} of {len(args.users)} user(s) for {owner}/{repo}")
            if skipped:
                print(f"Skipped (unknown on GitHub): {', '.join(skipped)}", file=sys.stderr)
            return 0

        logger.error("Unknown command", extra={"command": args.command})
        return 2

    except (ClaError, ForgeError) as e:
        logger.warning(str(e), extra={"command": args.command})
        print(str(e), file=sys.stderr)
        return 3

    except Exception:
        logger.exception("Command failed")
        return 1

    finally:
        # Wait for dispatched pull request updates before the process exits.
        executor.shutdown(wait=True)
        components.github.close()


if __name__ == "__main__":
    raise SystemExit(main())
