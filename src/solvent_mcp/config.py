"""Configuration for the Solvent MCP server."""

from __future__ import annotations

from functools import lru_cache
from typing import Optional, Set

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


TRANSPORTS = ("stdio", "sse", "http", "streamable-http")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        env_file=".env",
        extra="ignore",
    )

    service_name: str = Field(default="solvent")

    solvent_api_url: str = Field(default="http://localhost:3000")
    solvent_api_token: str = Field(
        default="",
        validation_alias=AliasChoices("solvent_api_token", "solvent_token"),
    )
    solvent_meta_path: str = Field(default="/api/v1/meta")
    solvent_api_timeout_seconds: float = Field(default=30)
    solvent_api_verify_ssl: bool = Field(default=True)

    mcp_transport: str = Field(default="stdio")
    mcp_host: str = Field(default="0.0.0.0")
    mcp_port: int = Field(default=8000)
    mcp_auth_token: Optional[str] = Field(default=None)

    mcp_tool_allowlist: Optional[str] = Field(default=None)
    mcp_validate_arguments: bool = Field(default=False)

    mcp_log_level: str = Field(default="INFO")

    def tool_allowlist(self) -> Set[str]:
        if not self.mcp_tool_allowlist:
            return set()
        return {item.strip() for item in self.mcp_tool_allowlist.split(",") if item.strip()}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
