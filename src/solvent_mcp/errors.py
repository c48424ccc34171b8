"""Startup errors for the Solvent MCP server."""

from __future__ import annotations


class SolventMcpError(Exception):
    pass


class MetadataFetchError(SolventMcpError):
    pass


class DuplicateToolError(SolventMcpError):
    def __init__(self, tool_name: str, first: str, second: str) -> None:
        super().__init__(
            f"Duplicate tool name '{tool_name}' generated by {first} and {second}"
        )
        self.tool_name = tool_name
