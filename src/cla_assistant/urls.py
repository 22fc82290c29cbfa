"""URL helpers for links written to GitHub and for gist lookups."""

from __future__ import annotations

from urllib.parse import urlencode, urlparse


def cla_url(app_base_url: str, owner: str, repo: str, number: int | None = None) -> str:
    """Return the page where contributors read and sign the CLA of a repository."""

    url = f"{app_base_url.rstrip('/')}/{owner}/{repo}"
    if number is not None:
        url += "?" + urlencode({"pullRequest": number})
    return url


def gist_id(url: str) -> str:
    """Extract the gist id from a gist URL (or return a bare id unchanged).

    >>> gist_id("https://gist.github.com/octocat/aa5a315d61ae9438b18d")
    'aa5a315d61ae9438b18d'
    """

    path = urlparse(url.strip()).path if "://" in url else url.strip()
    segments = [s for s in path.split("/") if s]
    if not segments:
        raise ValueError(f"Not a gist URL: {url!r}")
    # Revision URLs: /<owner>/<id>/<revision>
    if len(segments) >= 3:
        return segments[1]
    return segments[-1]
