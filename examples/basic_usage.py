#!/usr/bin/env python3
"""Programmatic CLA check example.

This uses the services directly instead of the REST API:

* load settings from `.env`
* resolve the gist revision the repository is linked to
* list which committers of a pull request still have to sign

The repository must already be linked (see `POST /api/repo/link`).
"""

from __future__ import annotations

import argparse
from typing import Sequence

from cla_assistant.config import ClaSettings
from cla_assistant.errors import ClaError
from cla_assistant.github.client import ForgeClient
from cla_assistant.logging import configure_logging
from cla_assistant.services.cla import ClaService
from cla_assistant.services.store import RepoStore, SignatureStore


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Check the CLA state of a pull request.")
    parser.add_argument("--repo", required=True, help='Target repository in the form "owner/repo"')
    parser.add_argument("--number", required=True, type=int, help="Pull request number")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    owner, _, repo = args.repo.partition("/")

    settings = ClaSettings()
    configure_logging(settings.log_level)

    github = ForgeClient(base_url=settings.github_base_url)
    service = ClaService(
        github=github,
        repos=RepoStore(settings.repos_state_file),
        signatures=SignatureStore(settings.signatures_state_file),
    )

    try:
        result = service.check(owner=owner, repo=repo, number=args.number)
    except ClaError as exc:
        print(str(exc))
        return 1
    finally:
        github.close()

    print(f"{args.repo}#{args.number}: {'signed' if result.signed else 'not signed'}")
    if result.user_map is not None:
        print(f"Signed: {', '.join(result.user_map.signed) or '-'}")
        print(f"Missing: {', '.join(result.user_map.not_signed) or '-'}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
