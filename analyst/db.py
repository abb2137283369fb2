"""SQLite persistence layer for team, standings and match records."""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

SCHEMA_VERSION = 1


class StatsDatabase:
    """Small SQLite wrapper with explicit schema management.

    Every call opens its own connection so lookups can run on worker threads
    and concurrent queries never share a connection.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create or migrate schema."""

        with self._connect() as conn:
            conn.execute("CREATE TABLE IF NOT EXISTS schema_version (version INTEGER NOT NULL)")
            row = conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
            if row is None:
                self._create_schema(conn)
                conn.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
            elif row["version"] != SCHEMA_VERSION:
                raise RuntimeError(
                    f"Unsupported schema version {row['version']} (expected {SCHEMA_VERSION})"
                )

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS teams (
                name TEXT PRIMARY KEY COLLATE NOCASE,
                league TEXT NOT NULL COLLATE NOCASE,
                strengths_json TEXT NOT NULL,
                weaknesses_json TEXT NOT NULL,
                opportunities_json TEXT NOT NULL,
                threats_json TEXT NOT NULL,
                goals_scored INTEGER NOT NULL,
                goals_conceded INTEGER NOT NULL
            );

            CREATE TABLE IF NOT EXISTS standings (
                league TEXT NOT NULL COLLATE NOCASE,
                team TEXT NOT NULL COLLATE NOCASE,
                position INTEGER NOT NULL,
                played INTEGER NOT NULL,
                won INTEGER NOT NULL,
                drawn INTEGER NOT NULL,
                lost INTEGER NOT NULL,
                points INTEGER NOT NULL,
                PRIMARY KEY (league, team)
            );

            CREATE TABLE IF NOT EXISTS matches (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                league TEXT NOT NULL COLLATE NOCASE,
                played_on TEXT NOT NULL,
                home_team TEXT NOT NULL COLLATE NOCASE,
                away_team TEXT NOT NULL COLLATE NOCASE,
                home_goals INTEGER NOT NULL,
                away_goals INTEGER NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_matches_home ON matches(home_team);
            CREATE INDEX IF NOT EXISTS idx_matches_away ON matches(away_team);
            """
        )

    def upsert_team(
        self,
        name: str,
        league: str,
        strengths: list[str],
        weaknesses: list[str],
        goals_scored: int,
        goals_conceded: int,
        opportunities: list[str] | None = None,
        threats: list[str] | None = None,
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO teams(name, league, strengths_json, weaknesses_json,
                                  opportunities_json, threats_json, goals_scored, goals_conceded)
                VALUES(?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(name) DO UPDATE SET
                    league=excluded.league,
                    strengths_json=excluded.strengths_json,
                    weaknesses_json=excluded.weaknesses_json,
                    opportunities_json=excluded.opportunities_json,
                    threats_json=excluded.threats_json,
                    goals_scored=excluded.goals_scored,
                    goals_conceded=excluded.goals_conceded
                """,
                (
                    name,
                    league,
                    json.dumps(strengths),
                    json.dumps(weaknesses),
                    json.dumps(opportunities or []),
                    json.dumps(threats or []),
                    goals_scored,
                    goals_conceded,
                ),
            )

    def record_standing(
        self,
        league: str,
        team: str,
        position: int,
        played: int,
        won: int,
        drawn: int,
        lost: int,
        points: int,
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO standings(league, team, position, played, won, drawn, lost, points)
                VALUES(?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(league, team) DO UPDATE SET
                    position=excluded.position,
                    played=excluded.played,
                    won=excluded.won,
                    drawn=excluded.drawn,
                    lost=excluded.lost,
                    points=excluded.points
                """,
                (league, team, position, played, won, drawn, lost, points),
            )

    def add_match(
        self,
        league: str,
        played_on: str,
        home_team: str,
        away_team: str,
        home_goals: int,
        away_goals: int,
    ) -> int:
        with self._connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO matches(league, played_on, home_team, away_team, home_goals, away_goals)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (league, played_on, home_team, away_team, home_goals, away_goals),
            )
            return int(cursor.lastrowid)

    def load_seed(self, seed: dict[str, Any]) -> None:
        """Load a seed mapping with optional ``teams``, ``standings`` and ``matches`` lists."""

        for team in seed.get("teams", []):
            self.upsert_team(**team)
        for standing in seed.get("standings", []):
            self.record_standing(**standing)
        for match in seed.get("matches", []):
            self.add_match(**match)

    def get_team(self, name: str) -> dict[str, Any] | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM teams WHERE name = ?", (name,)).fetchone()
        return dict(row) if row is not None else None

    def get_standings(self, league: str) -> list[dict[str, Any]]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT league, team, position, played, won, drawn, lost, points
                FROM standings
                WHERE league = ?
                ORDER BY position ASC
                """,
                (league,),
            ).fetchall()
        return [dict(row) for row in rows]

    def get_matches(self, team: str, limit: int) -> list[dict[str, Any]]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT league, played_on, home_team, away_team, home_goals, away_goals
                FROM matches
                WHERE home_team = ? OR away_team = ?
                ORDER BY played_on DESC, id DESC
                LIMIT ?
                """,
                (team, team, limit),
            ).fetchall()
        return [dict(row) for row in rows]
