"""CLA orchestration layer."""

from cla_assistant.api.auth import require_admin, resolve_user
from cla_assistant.api.cla import ClaApi
from cla_assistant.api.factory import Components, build_components
from cla_assistant.api.repo import RepoApi

__all__ = [
    "ClaApi",
    "Components",
    "RepoApi",
    "build_components",
    "require_admin",
    "resolve_user",
]
