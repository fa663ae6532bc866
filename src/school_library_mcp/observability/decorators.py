"""Decorators for tracing MCP components."""

import functools
from collections.abc import Callable
from datetime import datetime
from typing import Any

import logfire


def trace_tool(tool_name: str):
    """Decorator to trace MCP tool execution."""

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            with logfire.span(
                f"tool.execution.{tool_name}",
                tool_name=tool_name,
                tool_category=_categorize_tool(tool_name),
            ) as span:
                start_time = datetime.now()

                arguments = kwargs.get("arguments")
                if arguments is None and args and isinstance(args[0], dict):
                    arguments = args[0]
                _add_attributes(span, "input", arguments or {})

                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    span.set_attribute("tool.success", False)
                    span.set_attribute("tool.error", str(e))
                    raise

                # Handlers report failures in the result rather than raising
                is_error = isinstance(result, dict) and bool(result.get("isError"))
                span.set_attribute("tool.success", not is_error)
                span.set_attribute(
                    "tool.duration_ms", (datetime.now() - start_time).total_seconds() * 1000
                )
                if is_error:
                    span.set_attribute("tool.error", _error_text(result))

                return result

        return wrapper

    return decorator


def trace_resource(resource_type: str):
    """Lightweight decorator for resource reads."""

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            with logfire.span(
                f"resource.read.{resource_type}",
                resource_type=resource_type,
            ) as span:
                _add_attributes(span, "params", kwargs)

                result = await func(*args, **kwargs)

                if isinstance(result, dict):
                    for key in ("total", "count"):
                        if isinstance(result.get(key), int):
                            span.set_attribute(f"result.{key}", result[key])
                return result

        return wrapper

    return decorator


def _categorize_tool(tool_name: str) -> str:
    if "loan" in tool_name or "return" in tool_name:
        return "circulation"
    if "book" in tool_name:
        return "catalog"
    if "storytelling" in tool_name:
        return "storytelling"
    if any(kind in tool_name for kind in ("student", "teacher", "school")):
        return "people"
    return "general"


def _add_attributes(span, prefix: str, data: dict[str, Any]):
    for key, value in data.items():
        if isinstance(value, str | int | float | bool):
            span.set_attribute(f"{prefix}.{key}", value)


def _error_text(result: dict[str, Any]) -> str:
    content = result.get("content") or []
    if content and isinstance(content[0], dict):
        return str(content[0].get("text", ""))
    return ""
