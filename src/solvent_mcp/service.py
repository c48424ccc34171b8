"""Tool call dispatch for generated Solvent tools."""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Optional, Tuple

from pydantic import ValidationError

from .executors import ExecutionError, RestExecutor, build_request
from .logging import redact_payload
from .models import ServerContext, ToolCallResult, ToolDescriptor
from .tool_registry import ToolRegistry

logger = logging.getLogger(__name__)


class ToolDispatcher:
    """
    Routes tool calls to the Solvent REST API.

    Every call ends in a ToolCallResult. Unknown tools, invalid arguments and
    upstream failures come back as error results instead of raising.
    """

    def __init__(
        self,
        context: ServerContext,
        registry: ToolRegistry,
        executor: Optional[RestExecutor] = None,
        validate_arguments: bool = False,
    ) -> None:
        self.context = context
        self.registry = registry
        self.executor = executor or RestExecutor()
        self.validate_arguments = validate_arguments

    def list_tools(self) -> Tuple[ToolDescriptor, ...]:
        return self.registry.tools

    async def call_tool(
        self, name: str, arguments: Optional[Mapping[str, Any]] = None
    ) -> ToolCallResult:
        arguments = dict(arguments or {})
        mapping = self.registry.get(name)
        if mapping is None:
            logger.warning("Unknown tool requested: %s", name)
            return self._format_error(f"Unknown tool: {name}")

        logger.info("Executing tool=%s arguments=%s", name, redact_payload(arguments))

        if self.validate_arguments:
            try:
                self.registry.input_model(name).model_validate(arguments)
            except ValidationError as exc:
                return self._format_error(f"Invalid arguments for tool {name}: {exc}")

        try:
            request = build_request(
                self.context.api_url, self.context.token, mapping.endpoint, arguments
            )
            logger.debug("Tool %s -> %s %s", name, request.method, request.url)
            result = await self.executor.execute(request)
        except (ExecutionError, TypeError, ValueError) as exc:
            logger.error("Tool execution failed: tool=%s error=%s", name, exc)
            return self._format_error(f"Error executing tool {name}: {exc}")

        return self._format_result(result)

    def _format_result(self, result: Any) -> ToolCallResult:
        return ToolCallResult.from_text(json.dumps(result, indent=2, ensure_ascii=False))

    def _format_error(self, message: str) -> ToolCallResult:
        return ToolCallResult.error(message)
