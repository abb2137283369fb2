"""Data store accessor: shapes stored records into function results."""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from typing import Any, Callable, TypeVar

from analyst.db import StatsDatabase
from analyst.errors import DataAccessError
from analyst.models import FunctionResult, NotFound

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MATCH_LIMIT = 5
MAX_MATCH_LIMIT = 50


class DataStoreAccessor:
    """One lookup per query category against the stats database.

    A missing team or league is a normal outcome reported as ``NotFound``.
    ``DataAccessError`` is reserved for store failures: SQLite errors,
    malformed stored records, or a lookup exceeding ``timeout_seconds``.
    """

    def __init__(self, db: StatsDatabase, timeout_seconds: float) -> None:
        self._db = db
        self._timeout_seconds = timeout_seconds

    async def team_insights(self, team_name: str) -> FunctionResult:
        team = await self._lookup(self._db.get_team, team_name)
        if team is None:
            return NotFound(team_name)
        scored = _int_field(team, "goals_scored")
        conceded = _int_field(team, "goals_conceded")
        return {
            "team_name": team["name"],
            "league": team["league"],
            "strengths": _list_field(team, "strengths_json"),
            "weaknesses": _list_field(team, "weaknesses_json"),
            "goal_stats": {
                "scored": scored,
                "conceded": conceded,
                "goal_difference": scored - conceded,
            },
        }

    async def standings(self, league_name: str) -> FunctionResult:
        rows = await self._lookup(self._db.get_standings, league_name)
        if not rows:
            return NotFound(league_name)
        return {
            "league_name": rows[0]["league"],
            "table": [
                {
                    "position": _int_field(row, "position"),
                    "team_name": row["team"],
                    "played": _int_field(row, "played"),
                    "won": _int_field(row, "won"),
                    "drawn": _int_field(row, "drawn"),
                    "lost": _int_field(row, "lost"),
                    "points": _int_field(row, "points"),
                }
                for row in rows
            ],
        }

    async def match_history(self, team_name: str, limit: int = DEFAULT_MATCH_LIMIT) -> FunctionResult:
        team = await self._lookup(self._db.get_team, team_name)
        if team is None:
            return NotFound(team_name)
        limit = max(1, min(limit, MAX_MATCH_LIMIT))
        canonical = team["name"]
        rows = await self._lookup(self._db.get_matches, canonical, limit)
        return {
            "team_name": canonical,
            "matches": [_shape_match(row, canonical) for row in rows],
        }

    async def swot(self, team_name: str) -> FunctionResult:
        team = await self._lookup(self._db.get_team, team_name)
        if team is None:
            return NotFound(team_name)
        return {
            "team_name": team["name"],
            "strengths": _list_field(team, "strengths_json"),
            "weaknesses": _list_field(team, "weaknesses_json"),
            "opportunities": _list_field(team, "opportunities_json"),
            "threats": _list_field(team, "threats_json"),
        }

    async def _lookup(self, func: Callable[..., T], *args: Any) -> T:
        try:
            return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout=self._timeout_seconds)
        except asyncio.TimeoutError as exc:
            raise DataAccessError(f"Data store lookup timed out after {self._timeout_seconds}s") from exc
        except sqlite3.Error as exc:
            raise DataAccessError(f"Data store error: {exc}") from exc


def _list_field(record: dict[str, Any], column: str) -> list[str]:
    try:
        value = json.loads(record[column])
    except (KeyError, TypeError, json.JSONDecodeError) as exc:
        raise DataAccessError(f"Malformed stored record: column {column!r} is not valid JSON") from exc
    if not isinstance(value, list):
        raise DataAccessError(f"Malformed stored record: column {column!r} is not a list")
    return [str(item) for item in value]


def _int_field(record: dict[str, Any], column: str) -> int:
    value = record.get(column)
    if not isinstance(value, int) or isinstance(value, bool):
        raise DataAccessError(f"Malformed stored record: column {column!r} is not an integer")
    return value


def _shape_match(row: dict[str, Any], team: str) -> dict[str, Any]:
    home_goals = _int_field(row, "home_goals")
    away_goals = _int_field(row, "away_goals")
    home = row["home_team"].casefold() == team.casefold()
    scored, conceded = (home_goals, away_goals) if home else (away_goals, home_goals)
    if scored > conceded:
        result = "W"
    elif scored < conceded:
        result = "L"
    else:
        result = "D"
    return {
        "played_on": row["played_on"],
        "home_team": row["home_team"],
        "away_team": row["away_team"],
        "home_goals": home_goals,
        "away_goals": away_goals,
        "result": result,
    }
