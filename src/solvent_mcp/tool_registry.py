"""Tool registry built from the API metadata document."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from pydantic import BaseModel

from .errors import DuplicateToolError
from .models import ApiMetadata, ToolDescriptor, ToolEndpointMapping
from .schema import build_input_model, compile_endpoint


logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    Ordered tool descriptors plus the name -> endpoint lookup table.

    Built once at startup and read-only afterwards.
    """

    def __init__(
        self,
        tools: Iterable[ToolDescriptor],
        mappings: Dict[str, ToolEndpointMapping],
    ) -> None:
        self._tools: Tuple[ToolDescriptor, ...] = tuple(tools)
        self._mappings: Dict[str, ToolEndpointMapping] = dict(mappings)
        self._input_models: Dict[str, type[BaseModel]] = {}

    @classmethod
    def from_metadata(
        cls, metadata: ApiMetadata, allowlist: Iterable[str] = ()
    ) -> "ToolRegistry":
        tools: List[ToolDescriptor] = []
        mappings: Dict[str, ToolEndpointMapping] = {}

        for entity in metadata.entities:
            for endpoint in entity.endpoints:
                tool, mapping = compile_endpoint(endpoint, entity.name, entity.singular_name)
                existing = mappings.get(tool.name)
                if existing is not None:
                    raise DuplicateToolError(
                        tool.name,
                        _describe(existing),
                        _describe(mapping),
                    )
                tools.append(tool)
                mappings[tool.name] = mapping

        allowed = set(allowlist)
        if allowed:
            tools = [
                t for t in tools
                if t.name in allowed or mappings[t.name].entity_name in allowed
            ]
            skipped = set(mappings) - {t.name for t in tools}
            if skipped:
                logger.info("Tools excluded by allowlist: %s", ", ".join(sorted(skipped)))
            mappings = {t.name: mappings[t.name] for t in tools}

        return cls(tools, mappings)

    @property
    def tools(self) -> Tuple[ToolDescriptor, ...]:
        return self._tools

    @property
    def names(self) -> List[str]:
        return [tool.name for tool in self._tools]

    def get(self, tool_name: str) -> Optional[ToolEndpointMapping]:
        return self._mappings.get(tool_name)

    def input_model(self, tool_name: str) -> type[BaseModel]:
        model = self._input_models.get(tool_name)
        if model is None:
            mapping = self._mappings[tool_name]
            model = build_input_model(tool_name, mapping.endpoint)
            self._input_models[tool_name] = model
        return model

    def __contains__(self, tool_name: object) -> bool:
        return tool_name in self._mappings

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[ToolDescriptor]:
        return iter(self._tools)


def _describe(mapping: ToolEndpointMapping) -> str:
    endpoint = mapping.endpoint
    return f"{mapping.entity_name}:{endpoint.method.value} {endpoint.path}"
