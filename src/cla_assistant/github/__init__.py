"""GitHub integration."""

from cla_assistant.github.client import ForgeClient, ForgeResponse

__all__ = ["ForgeClient", "ForgeResponse"]
