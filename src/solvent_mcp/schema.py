"""Compile endpoint metadata into MCP tool names and input schemas."""

from __future__ import annotations

import datetime
import uuid
from typing import Any, Dict, Iterable, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, create_model

from .models import (
    EndpointDescriptor,
    FieldDescriptor,
    FieldType,
    HttpMethod,
    ToolDescriptor,
    ToolEndpointMapping,
)


def generate_tool_name(
    endpoint: EndpointDescriptor, entity_name: str, singular_name: str
) -> str:
    """
    Derive the tool name for an endpoint.

    GET /api/v1/expenses        -> list_expenses
    GET /api/v1/expenses/:id    -> get_expense
    POST /api/v1/expenses       -> create_expense
    PUT /api/v1/expenses/:id    -> update_expense
    PATCH /api/v1/expenses/:id  -> patch_expense
    DELETE /api/v1/expenses/:id -> delete_expense
    """
    method = endpoint.method
    if method == HttpMethod.GET:
        if endpoint.has_placeholder:
            return f"get_{singular_name}"
        return f"list_{entity_name}"
    if method == HttpMethod.POST:
        return f"create_{singular_name}"
    if method == HttpMethod.PUT:
        return f"update_{singular_name}"
    if method == HttpMethod.PATCH:
        return f"patch_{singular_name}"
    if method == HttpMethod.DELETE:
        return f"delete_{singular_name}"
    raise ValueError(f"Unsupported HTTP method: {method!r}")


def field_to_property(field: FieldDescriptor) -> Dict[str, Any]:
    field_type = field.type
    if field_type == FieldType.STRING:
        prop: Dict[str, Any] = {"type": "string"}
    elif field_type == FieldType.NUMBER:
        prop = {"type": "number"}
    elif field_type == FieldType.BOOLEAN:
        prop = {"type": "boolean"}
    elif field_type == FieldType.DATE:
        prop = {"type": "string", "format": "date"}
    elif field_type == FieldType.UUID:
        prop = {"type": "string", "format": "uuid"}
    elif field_type == FieldType.ENUM:
        prop = {"type": "string"}
        if field.enum_values:
            prop["enum"] = list(field.enum_values)
    else:
        raise ValueError(f"Unsupported field type: {field_type!r}")

    if field.description is not None:
        prop["description"] = field.description
    return prop


def iter_fields(endpoint: EndpointDescriptor) -> Iterable[FieldDescriptor]:
    """Path, query and body fields, in that order."""
    yield from endpoint.path_params
    yield from endpoint.query_params
    yield from endpoint.body_schema


def build_input_schema(endpoint: EndpointDescriptor) -> Dict[str, Any]:
    properties: Dict[str, Dict[str, Any]] = {}
    required: List[str] = []

    # Later groups overwrite earlier ones on a name clash.
    for field in iter_fields(endpoint):
        properties[field.name] = field_to_property(field)
        if field.required and field.name not in required:
            required.append(field.name)

    return {"type": "object", "properties": properties, "required": required}


def build_annotations(endpoint: EndpointDescriptor) -> Dict[str, bool]:
    method = endpoint.method
    return {
        "readOnlyHint": method == HttpMethod.GET,
        "destructiveHint": method == HttpMethod.DELETE,
        "idempotentHint": method in (HttpMethod.GET, HttpMethod.PUT, HttpMethod.DELETE),
    }


def compile_endpoint(
    endpoint: EndpointDescriptor, entity_name: str, singular_name: str
) -> Tuple[ToolDescriptor, ToolEndpointMapping]:
    tool_name = generate_tool_name(endpoint, entity_name, singular_name)
    tool = ToolDescriptor(
        name=tool_name,
        description=endpoint.description,
        input_schema=build_input_schema(endpoint),
        annotations=build_annotations(endpoint),
    )
    mapping = ToolEndpointMapping(
        tool_name=tool_name,
        endpoint=endpoint,
        entity_name=entity_name,
        singular_name=singular_name,
    )
    return tool, mapping


def build_input_model(tool_name: str, endpoint: EndpointDescriptor) -> type[BaseModel]:
    """
    Pydantic model mirroring the compiled input schema, used for argument validation.

    Attributes are positional (``field_0``, ``field_1``, ...) and each carries the
    wire name as its alias, so names like ``_meta`` or ``model_config``
    are accepted. A name is required when any group marks it required, and its
    type comes from the last group that declares it.
    """
    declared: Dict[str, FieldDescriptor] = {}
    required = set()
    for field in iter_fields(endpoint):
        declared[field.name] = field
        if field.required:
            required.add(field.name)

    fields: Dict[str, Tuple[Any, Any]] = {}
    for index, (name, field) in enumerate(declared.items()):
        annotation = _field_annotation(field)
        if name in required:
            fields[f"field_{index}"] = (
                annotation,
                Field(..., alias=name, description=field.description),
            )
        else:
            fields[f"field_{index}"] = (
                Optional[annotation],
                Field(None, alias=name, description=field.description),
            )

    model_config = ConfigDict(extra="allow")
    model_name = f"{_sanitize_name(tool_name)}Input"
    return create_model(model_name, __config__=model_config, **fields)


def _field_annotation(field: FieldDescriptor) -> Any:
    field_type = field.type
    if field_type == FieldType.STRING:
        return str
    if field_type == FieldType.NUMBER:
        return float
    if field_type == FieldType.BOOLEAN:
        return bool
    if field_type == FieldType.DATE:
        return datetime.date
    if field_type == FieldType.UUID:
        return uuid.UUID
    if field_type == FieldType.ENUM:
        if field.enum_values:
            return Literal[tuple(field.enum_values)]
        return str
    raise ValueError(f"Unsupported field type: {field_type!r}")


def _sanitize_name(name: str) -> str:
    return "".join(ch if ch.isalnum() else "_" for ch in name)
