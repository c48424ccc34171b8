"""Metadata and tool models for the Solvent MCP server."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator, model_validator
from pydantic.alias_generators import to_camel


PATH_PARAM_PATTERN = re.compile(r":([A-Za-z_][A-Za-z0-9_]*)")


def path_placeholders(path: str) -> List[str]:
    return PATH_PARAM_PATTERN.findall(path)


class FieldType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    UUID = "uuid"
    ENUM = "enum"


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


BODY_METHODS = frozenset({HttpMethod.POST, HttpMethod.PUT, HttpMethod.PATCH})


class _MetadataModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class FieldDescriptor(_MetadataModel):
    name: str
    type: FieldType
    required: bool = False
    description: Optional[str] = None
    enum_values: Optional[Tuple[str, ...]] = None


class Permission(_MetadataModel):
    entity: str
    action: Literal["read", "write"]


class EndpointDescriptor(_MetadataModel):
    path: str
    method: HttpMethod
    description: str = ""
    permission: Optional[Permission] = None
    path_params: Tuple[FieldDescriptor, ...] = ()
    query_params: Tuple[FieldDescriptor, ...] = ()
    body_schema: Tuple[FieldDescriptor, ...] = ()

    @field_validator("method", mode="before")
    @classmethod
    def _normalize_method(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.upper()
        return value

    @field_validator("path_params", "query_params", "body_schema", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return () if value is None else value

    @model_validator(mode="after")
    def _check_placeholders(self) -> "EndpointDescriptor":
        declared = {param.name for param in self.path_params}
        missing = [name for name in path_placeholders(self.path) if name not in declared]
        if missing:
            raise ValueError(
                f"{self.method.value} {self.path} references undeclared path params: "
                + ", ".join(missing)
            )
        return self

    @property
    def has_placeholder(self) -> bool:
        return bool(PATH_PARAM_PATTERN.search(self.path))


class EntityDescriptor(_MetadataModel):
    name: str
    singular_name: str
    description: str = ""
    endpoints: Tuple[EndpointDescriptor, ...] = ()


class AuthenticationConfig(_MetadataModel):
    type: Literal["bearer"] = "bearer"
    header: str = "Authorization"
    prefix: str = "Bearer"


class ApiMetadata(_MetadataModel):
    version: str
    base_url: str = ""
    authentication: AuthenticationConfig = AuthenticationConfig()
    entities: Tuple[EntityDescriptor, ...] = ()

    @property
    def endpoint_count(self) -> int:
        return sum(len(entity.endpoints) for entity in self.entities)


@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    description: str
    input_schema: Dict[str, Any]
    annotations: Dict[str, bool] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


@dataclass(frozen=True)
class ToolEndpointMapping:
    tool_name: str
    endpoint: EndpointDescriptor
    entity_name: str
    singular_name: str


@dataclass(frozen=True)
class ServerContext:
    """Everything derived from startup that tool calls need to read."""

    api_url: str
    token: str
    metadata: ApiMetadata


@dataclass(frozen=True)
class ToolCallResult:
    content: Tuple[Dict[str, str], ...]
    is_error: bool = False

    @classmethod
    def from_text(cls, text: str) -> "ToolCallResult":
        return cls(content=({"type": "text", "text": text},))

    @classmethod
    def error(cls, text: str) -> "ToolCallResult":
        return cls(content=({"type": "text", "text": text},), is_error=True)

    @property
    def text(self) -> str:
        return "\n".join(item["text"] for item in self.content)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"content": [dict(item) for item in self.content]}
        if self.is_error:
            payload["isError"] = True
        return payload
