"""FastAPI server adapter for the CLA assistant.

Design intent:
- Keep business logic in `cla_assistant.api.*` and `cla_assistant.services.*`
- Keep server-specific concerns (routing, auth header, CORS, error mapping) here
"""

from __future__ import annotations

__all__ = ["create_app"]

from cla_assistant.server.app import create_app
