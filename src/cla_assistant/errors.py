"""Exception types raised by the CLA services and orchestration layer."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cla_assistant.github.client import ForgeResponse


class ClaError(Exception):
    """Base class for errors surfaced to API callers."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class NotFound(ClaError):
    """No repository or CLA gist could be resolved."""


class RenderError(ClaError):
    """Markdown rendering of the CLA text failed."""


class SignError(ClaError):
    """Recording a signature failed."""


class CheckError(ClaError):
    """Determining the signed state failed."""


class NotAuthenticated(ClaError):
    """The operation requires an authenticated GitHub user."""


class Forbidden(ClaError):
    """The authenticated user may not administer the repository."""


class ForgeError(Exception):
    """A named GitHub call failed.

    The failed call may still have produced a response (e.g. an HTTP error body),
    which is kept on ``response`` so callers can inspect status code and message.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        response: ForgeResponse | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response = response

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"{self.message} (HTTP {self.status_code})"
