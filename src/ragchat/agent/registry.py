"""Typed tool registry built on Pydantic v2 models.

Every tool is a :class:`ToolSpec`: a name, a description the model reads,
an input schema and an async handler.  The registry validates arguments
before anything runs and resolves unknown tool names through an explicit
default entry instead of failing the turn.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any
from uuid import uuid4

from langchain_core.messages import ToolMessage
from langchain_core.tools import StructuredTool
from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as SchemaError

from ragchat.errors import CapabilityUnavailable, InvalidToolInput, ToolExecutionError, ValidationError

logger = logging.getLogger(__name__)


class ToolSpec(BaseModel):
    """Declarative tool specification for registration and validation."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    description: str
    args_schema: type[BaseModel]
    handler: Callable[[Any], Awaitable[BaseModel]]

    def validate_args(self, payload: dict[str, Any]) -> BaseModel:
        try:
            return self.args_schema.model_validate(payload)
        except SchemaError as exc:
            detail = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or '<input>'}: {err['msg']}"
                for err in exc.errors()
            )
            raise InvalidToolInput(self.name, detail) from exc

    async def run(self, payload: dict[str, Any]) -> BaseModel:
        data = self.validate_args(payload)
        try:
            return await self.handler(data)
        except ValidationError as exc:
            raise InvalidToolInput(self.name, str(exc)) from exc
        except CapabilityUnavailable:
            raise
        except Exception as exc:
            raise ToolExecutionError(self.name, str(exc)) from exc


class ToolRegistry:
    """Maps tool names to specs and turns tool calls into tool messages.

    Parameters
    ----------
    default:
        Name of the entry unknown tool names resolve to.  Must be
        registered before the first call that needs it.
    """

    def __init__(self, default: str | None = None) -> None:
        self._tools: dict[str, ToolSpec] = {}
        self.default = default

    def register(self, spec: ToolSpec) -> None:
        if spec.name in self._tools:
            raise ValueError(f"Tool already registered: {spec.name}")
        self._tools[spec.name] = spec

    def names(self) -> list[str]:
        return list(self._tools)

    def specs(self) -> list[ToolSpec]:
        return list(self._tools.values())

    def get(self, name: str) -> ToolSpec | None:
        return self._tools.get(name)

    def resolve(self, name: str) -> tuple[ToolSpec, bool]:
        """Return ``(spec, used_default)`` for *name*."""
        spec = self._tools.get(name)
        if spec is not None:
            return spec, False
        if self.default is None or self.default not in self._tools:
            raise ToolExecutionError(name, "unknown tool and no default tool registered")
        logger.warning("Unknown tool %r requested, routing to %r", name, self.default)
        return self._tools[self.default], True

    async def execute(self, name: str, payload: dict[str, Any]) -> BaseModel:
        """Validate *payload* for *name* and run the handler."""
        spec, used_default = self.resolve(name)
        if used_default:
            payload = _fallback_payload(payload)
        return await spec.run(payload)

    async def arun_call(self, call: dict[str, Any]) -> ToolMessage:
        """Execute one LangChain tool call; never raises.

        Failures are reported as a ``status="error"`` :class:`ToolMessage`
        whose content the model can read.
        """
        name = call.get("name") or ""
        args = call.get("args") or {}
        call_id = call.get("id") or f"call_{uuid4().hex[:12]}"

        try:
            spec, used_default = self.resolve(name)
            output = await spec.run(_fallback_payload(args) if used_default else args)
        except InvalidToolInput as exc:
            logger.warning("Rejected tool call %s: %s", name, exc)
            return _error_message(exc, name=name, call_id=call_id)
        except Exception as exc:
            logger.exception("Tool %s failed", name)
            return _error_message(exc, name=name, call_id=call_id)

        return ToolMessage(
            content=output.model_dump_json(),
            name=spec.name,
            tool_call_id=call_id,
            artifact=output.model_dump(mode="json"),
        )

    def as_langchain_tools(self) -> list[StructuredTool]:
        """Export every spec as a ``StructuredTool`` (for ``bind_tools``)."""
        return [
            StructuredTool.from_function(
                coroutine=self._build_coroutine(spec),
                name=spec.name,
                description=spec.description,
                args_schema=spec.args_schema,
            )
            for spec in self._tools.values()
        ]

    def _build_coroutine(self, spec: ToolSpec) -> Callable[..., Awaitable[str]]:
        async def _call(**kwargs: Any) -> str:
            output = await spec.run(kwargs)
            return output.model_dump_json()

        return _call


def _fallback_payload(payload: dict[str, Any]) -> dict[str, Any]:
    """Map arbitrary arguments onto the default retrieval tool's schema."""
    query = payload.get("query")
    if not isinstance(query, str) or not query.strip():
        query = " ".join(v for v in payload.values() if isinstance(v, str) and v.strip())
    return {"query": query}


def _error_message(exc: Exception, *, name: str, call_id: str) -> ToolMessage:
    return ToolMessage(
        content=json.dumps({"error": str(exc)}),
        name=name,
        tool_call_id=call_id,
        status="error",
    )
