"""CLA Assistant.

Enforces Contributor License Agreements on GitHub pull requests:
- CLA documents are hosted as gists and rendered through the GitHub markdown API
- signatures are persisted locally, one per (repository, gist version, user)
- open pull requests get a commit status and a summary comment reflecting the CLA state
"""

__version__ = "0.1.0"

from cla_assistant.config import ClaSettings

__all__ = ["__version__", "ClaSettings"]
