"""Services composing the stores with GitHub."""

from cla_assistant.services.cla import ClaService
from cla_assistant.services.pull_request import PullRequestService
from cla_assistant.services.status import StatusService
from cla_assistant.services.store import RepoStore, SignatureStore

__all__ = [
    "ClaService",
    "PullRequestService",
    "RepoStore",
    "SignatureStore",
    "StatusService",
]
