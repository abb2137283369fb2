"""Typed function catalog exposed to the model.

The catalog is static configuration: a list of ``{category, name,
description, parameters}`` entries. Each entry is validated once at startup
into the variant for its category, and the category decides which data-store
operation serves the function.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Annotated, Any, ClassVar, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator

from analyst.errors import CatalogError

LOGGER = logging.getLogger(__name__)

ParameterType = Literal["string", "integer", "number", "boolean", "array", "object"]


class ParameterSpec(BaseModel):
    """Declared type and presence rule for one function parameter."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: ParameterType
    required: bool = True
    description: str = ""


class FunctionSpec(BaseModel):
    """Contract for one callable operation."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    category: str
    name: str = Field(pattern=r"^[A-Za-z_][A-Za-z0-9_]*$", max_length=64)
    description: str = Field(min_length=1)
    parameters: dict[str, ParameterSpec] = Field(default_factory=dict)

    # Arguments the bound data-store operation accepts, and which of them it needs.
    operation_arguments: ClassVar[dict[str, str]] = {}
    operation_required: ClassVar[frozenset[str]] = frozenset()

    @model_validator(mode="after")
    def _check_operation_contract(self) -> FunctionSpec:
        if not self.operation_arguments:
            return self
        for name in sorted(self.operation_required):
            param = self.parameters.get(name)
            if param is None or not param.required:
                raise ValueError(f"{self.name}: parameter '{name}' must be declared as required")
        for name, param in self.parameters.items():
            expected = self.operation_arguments.get(name)
            if expected is None:
                raise ValueError(f"{self.name}: parameter '{name}' is not accepted by category '{self.category}'")
            if param.type != expected:
                raise ValueError(f"{self.name}: parameter '{name}' must have type '{expected}'")
        return self

    @property
    def required_parameters(self) -> list[str]:
        return [name for name, param in self.parameters.items() if param.required]

    def to_model_schema(self) -> dict[str, Any]:
        """Serialize as an OpenAI-compatible tool definition."""

        properties: dict[str, Any] = {}
        for name, param in self.parameters.items():
            prop: dict[str, Any] = {"type": param.type}
            if param.description:
                prop["description"] = param.description
            properties[name] = prop
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": properties,
                    "required": self.required_parameters,
                    "additionalProperties": False,
                },
            },
        }


class TeamInsightsSpec(FunctionSpec):
    category: Literal["team_insights"] = "team_insights"

    operation_arguments: ClassVar[dict[str, str]] = {"team_name": "string"}
    operation_required: ClassVar[frozenset[str]] = frozenset({"team_name"})


class StandingsSpec(FunctionSpec):
    category: Literal["standings"] = "standings"

    operation_arguments: ClassVar[dict[str, str]] = {"league_name": "string"}
    operation_required: ClassVar[frozenset[str]] = frozenset({"league_name"})


class MatchHistorySpec(FunctionSpec):
    category: Literal["match_history"] = "match_history"

    operation_arguments: ClassVar[dict[str, str]] = {"team_name": "string", "limit": "integer"}
    operation_required: ClassVar[frozenset[str]] = frozenset({"team_name"})


class SwotSpec(FunctionSpec):
    category: Literal["swot"] = "swot"

    operation_arguments: ClassVar[dict[str, str]] = {"team_name": "string"}
    operation_required: ClassVar[frozenset[str]] = frozenset({"team_name"})


CatalogEntry = Annotated[
    Union[TeamInsightsSpec, StandingsSpec, MatchHistorySpec, SwotSpec],
    Field(discriminator="category"),
]

_CATALOG_ADAPTER = TypeAdapter(list[CatalogEntry])


DEFAULT_CATALOG: list[dict[str, Any]] = [
    {
        "category": "team_insights",
        "name": "get_team_insights",
        "description": (
            "Get strengths, weaknesses and season goal statistics (scored, conceded, "
            "goal difference) for a team. Use for questions about how a team plays "
            "or performs."
        ),
        "parameters": {
            "team_name": {"type": "string", "required": True, "description": "Team name, e.g. 'Lansdowne'."},
        },
    },
    {
        "category": "standings",
        "name": "get_league_standings",
        "description": "Get the current league table (position, played, won, drawn, lost, points) for a league.",
        "parameters": {
            "league_name": {"type": "string", "required": True, "description": "League name."},
        },
    },
    {
        "category": "match_history",
        "name": "get_match_history",
        "description": "Get a team's most recent match results, newest first, with W/D/L outcome.",
        "parameters": {
            "team_name": {"type": "string", "required": True, "description": "Team name."},
            "limit": {
                "type": "integer",
                "required": False,
                "description": "Number of matches to return (default 5, max 50).",
            },
        },
    },
    {
        "category": "swot",
        "name": "get_team_swot",
        "description": "Get a SWOT analysis (strengths, weaknesses, opportunities, threats) for a team.",
        "parameters": {
            "team_name": {"type": "string", "required": True, "description": "Team name."},
        },
    },
]


def parse_catalog(entries: Any) -> list[FunctionSpec]:
    """Validate raw catalog entries into typed function specs."""

    try:
        return list(_CATALOG_ADAPTER.validate_python(entries))
    except ValidationError as exc:
        raise CatalogError(f"Invalid function catalog: {exc}") from exc


def load_catalog(path: Path | None = None) -> list[FunctionSpec]:
    """Load the function catalog from ``path`` or fall back to the built-in set."""

    if path is None:
        return parse_catalog(DEFAULT_CATALOG)

    try:
        entries = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise CatalogError(f"Cannot read function catalog {path}: {exc}") from exc
    specs = parse_catalog(entries)
    LOGGER.info("Loaded %d function specs from %s", len(specs), path)
    return specs
