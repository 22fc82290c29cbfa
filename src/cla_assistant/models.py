"""Pydantic models shared by the stores, services and the REST surface."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator


def _utc_iso_now() -> str:
    return datetime.now(tz=UTC).isoformat()


class GistRef(BaseModel):
    """Pointer to a revision of the gist holding the CLA text.

    Accepts a bare URL string, or the legacy ``{"gist_url", "gist_version"}`` shape
    still sent by older clients.
    """

    model_config = ConfigDict(frozen=True)

    url: str
    version: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _coerce(cls, value: object) -> object:
        if isinstance(value, str):
            return {"url": value}
        if isinstance(value, dict) and "gist_url" in value:
            return {"url": value.get("gist_url"), "version": value.get("gist_version")}
        return value

    @property
    def is_complete(self) -> bool:
        return bool(self.version)


class RepoRecord(BaseModel):
    """A repository linked to a CLA gist."""

    owner: str
    repo: str
    gist: GistRef | None = None
    token: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


class SignatureRecord(BaseModel):
    """A user's agreement to one gist revision for one repository."""

    owner: str
    repo: str
    gist_url: str
    gist_version: str | None = None
    user: str
    user_id: int | None = None
    created_at: str = Field(default_factory=_utc_iso_now)


class UserMap(BaseModel):
    """Per pull request breakdown of committers by signed state."""

    signed: list[str] = Field(default_factory=list)
    not_signed: list[str] = Field(default_factory=list)


class CheckResult(BaseModel):
    signed: bool
    user_map: UserMap | None = None


class RenderedCla(BaseModel):
    raw: str = ""
    html: str = ""


class AuthenticatedUser(BaseModel):
    login: str
    id: int
    token: str | None = None


class ClaArgs(BaseModel):
    """Operation arguments; each operation reads the subset it needs."""

    model_config = ConfigDict(extra="ignore")

    owner: str | None = None
    repo: str | None = None
    gist: GistRef | None = None
    user: str | None = None
    user_id: int | None = None
    users: list[str] | None = None
    token: str | None = None
    number: int | None = Field(default=None, gt=0)


class RequestContext(BaseModel):
    user: AuthenticatedUser | None = None
    args: ClaArgs = Field(default_factory=ClaArgs)
