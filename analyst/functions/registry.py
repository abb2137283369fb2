"""Registry for safe function registration and dispatch."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Sequence

from pydantic import BaseModel, ConfigDict, ValidationError, create_model

from analyst.errors import DuplicateNameError, InvalidArgumentError, UnknownFunctionError
from analyst.functions.catalog import FunctionSpec
from analyst.models import FunctionCallRequest, FunctionResult
from analyst.store import DataStoreAccessor

LOGGER = logging.getLogger(__name__)

FunctionHandler = Callable[[dict[str, Any]], Awaitable[FunctionResult]]

# Data-store operation serving each catalog category.
_CATEGORY_OPERATIONS = {
    "team_insights": "team_insights",
    "standings": "standings",
    "match_history": "match_history",
    "swot": "swot",
}


@dataclass(frozen=True, slots=True)
class _Entry:
    spec: FunctionSpec
    handler: FunctionHandler
    arguments_model: type[BaseModel]


class FunctionRegistry:
    """Explicit catalog of functions the model may call.

    Registration happens at startup. After that the registry is only read,
    so one instance can serve any number of concurrent queries.
    """

    def __init__(self) -> None:
        self._entries: dict[str, _Entry] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def register(self, spec: FunctionSpec, handler: FunctionHandler) -> None:
        if spec.name in self._entries:
            raise DuplicateNameError(spec.name)
        self._entries[spec.name] = _Entry(spec=spec, handler=handler, arguments_model=_arguments_model(spec))

    def specs(self) -> list[FunctionSpec]:
        return [entry.spec for entry in self._entries.values()]

    def schema_for_model(self) -> list[dict[str, Any]]:
        return [entry.spec.to_model_schema() for entry in self._entries.values()]

    def validate(self, request: FunctionCallRequest) -> dict[str, Any]:
        """Check a call against its spec and return the validated arguments.

        Raises:
            UnknownFunctionError: if no function is registered under the name.
            InvalidArgumentError: if a required argument is missing or an
                argument has the wrong type.
        """
        entry = self._entries.get(request.name)
        if entry is None:
            raise UnknownFunctionError(request.name)

        try:
            value = entry.arguments_model(**request.arguments)
        except ValidationError as exc:
            raise _invalid_argument(entry.spec, exc) from exc

        extra = set(request.arguments) - set(entry.spec.parameters)
        if extra:
            LOGGER.info("Ignoring undeclared arguments for %s: %s", request.name, sorted(extra))
        return value.model_dump(exclude_none=True)

    async def dispatch(self, request: FunctionCallRequest) -> FunctionResult:
        """Validate ``request`` and run its handler.

        Nothing reaches the handler unless validation passes. Errors raised by
        the handler, such as ``DataAccessError``, propagate unchanged.
        """
        arguments = self.validate(request)
        LOGGER.info("Dispatching %s with %r", request.name, arguments)
        return await self._entries[request.name].handler(arguments)


def build_registry(catalog: Sequence[FunctionSpec], accessor: DataStoreAccessor) -> FunctionRegistry:
    """Register every catalog entry against the accessor operation for its category."""

    registry = FunctionRegistry()
    for spec in catalog:
        operation = getattr(accessor, _CATEGORY_OPERATIONS[spec.category])
        registry.register(spec, _bind(operation))
    return registry


def _bind(operation: Callable[..., Awaitable[FunctionResult]]) -> FunctionHandler:
    async def handler(arguments: dict[str, Any]) -> FunctionResult:
        return await operation(**arguments)

    return handler


def _arguments_model(spec: FunctionSpec) -> type[BaseModel]:
    fields: dict[str, tuple[Any, Any]] = {}
    for name, param in spec.parameters.items():
        typ = _python_type(param.type)
        if param.required:
            fields[name] = (typ, ...)
        else:
            fields[name] = (typ | None, None)

    return create_model(
        f"{spec.name}_arguments",
        __config__=ConfigDict(strict=True, extra="ignore"),
        **fields,
    )


def _invalid_argument(spec: FunctionSpec, exc: ValidationError) -> InvalidArgumentError:
    error = exc.errors()[0]
    loc = error.get("loc") or ("<arguments>",)
    parameter = str(loc[0])
    if error.get("type") == "missing":
        reason = "required argument is missing"
    else:
        declared = spec.parameters.get(parameter)
        expected = declared.type if declared is not None else "a valid value"
        reason = f"expected {expected}"
    return InvalidArgumentError(spec.name, parameter, reason)


def _python_type(schema_type: str) -> type[Any]:
    mapping: dict[str, type[Any]] = {
        "string": str,
        "integer": int,
        "number": float,
        "boolean": bool,
        "object": dict,
        "array": list,
    }
    return mapping.get(schema_type, str)
