"""SQLite persistence of kinetic path runs and their output profiles."""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Mapping, Sequence

from simpkinetics.output import ChemicalOutput
from simpkinetics.quantity import parse_quantity
from simpkinetics.reactions import ReactionSystem

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS project (
  id INTEGER PRIMARY KEY,
  name TEXT NOT NULL,
  created_utc TEXT,
  notes TEXT
);
CREATE TABLE IF NOT EXISTS species (
  id INTEGER PRIMARY KEY,
  project_id INTEGER REFERENCES project(id),
  name TEXT,
  formula TEXT,
  phase TEXT,
  UNIQUE(project_id, name)
);
CREATE TABLE IF NOT EXISTS reaction (
  id INTEGER PRIMARY KEY,
  project_id INTEGER REFERENCES project(id),
  name TEXT,
  reversible INTEGER DEFAULT 0,
  stoich JSON,
  UNIQUE(project_id, name)
);
CREATE TABLE IF NOT EXISTS run (
  id INTEGER PRIMARY KEY,
  project_id INTEGER REFERENCES project(id),
  model JSON,
  solver JSON,
  manifest JSON,
  started TEXT,
  duration_ms INTEGER
);
CREATE TABLE IF NOT EXISTS profile (
  run_id INTEGER REFERENCES run(id),
  step INTEGER,
  x REAL,
  var TEXT,
  value REAL,
  unit TEXT,
  PRIMARY KEY (run_id, step, var)
);
"""


def connect(project_file: str | Path) -> sqlite3.Connection:
    """Open (and create) a .skproj SQLite project."""
    path = Path(project_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    connection = sqlite3.connect(path)
    connection.execute("PRAGMA foreign_keys = ON;")
    return connection


def ensure_schema(connection: sqlite3.Connection) -> None:
    connection.executescript(SCHEMA_SQL)
    connection.commit()


def create_project(
    connection: sqlite3.Connection,
    name: str,
    notes: str | None = None,
    created_utc: str | None = None,
) -> int:
    """Create a project entry and return its ID."""
    created_utc = created_utc or _utc_now()
    cursor = connection.execute(
        "INSERT INTO project (name, created_utc, notes) VALUES (?, ?, ?)",
        (name, created_utc, notes),
    )
    connection.commit()
    return int(cursor.lastrowid)


def save_reactions(connection: sqlite3.Connection, project_id: int, reactions: ReactionSystem) -> None:
    """Store the species and reactions of a reaction system under a project."""
    connection.executemany(
        "INSERT OR REPLACE INTO species (project_id, name, formula, phase) VALUES (?, ?, ?, ?)",
        [(project_id, s.name, s.formula, s.phase) for s in reactions.system.species],
    )
    connection.executemany(
        "INSERT OR REPLACE INTO reaction (project_id, name, reversible, stoich) VALUES (?, ?, ?, ?)",
        [
            (project_id, r.name, int(r.reversible), _json_dumps(dict(r.stoichiometry)))
            for r in reactions.reactions
        ],
    )
    connection.commit()


def save_run(
    connection: sqlite3.Connection,
    project_id: int,
    model: Mapping[str, object],
    solver: Mapping[str, object],
    manifest: Mapping[str, object],
    started_utc: str | None = None,
    duration_ms: int | None = None,
) -> int:
    """Persist a run record and return its ID."""
    started_utc = started_utc or _utc_now()
    cursor = connection.execute(
        "INSERT INTO run (project_id, model, solver, manifest, started, duration_ms)"
        " VALUES (?, ?, ?, ?, ?, ?)",
        (
            project_id,
            _json_dumps(model),
            _json_dumps(solver),
            _json_dumps(manifest),
            started_utc,
            duration_ms,
        ),
    )
    connection.commit()
    return int(cursor.lastrowid)


def save_profile(
    connection: sqlite3.Connection,
    run_id: int,
    x_values: Sequence[float],
    series: Mapping[str, Sequence[float]],
    units: Mapping[str, str | None] | None = None,
) -> None:
    """Save one row per (step, variable) for a run."""
    units = units or {}
    rows_list: list[tuple[object, ...]] = []
    for index, x_value in enumerate(x_values):
        for variable, values in series.items():
            rows_list.append(
                (run_id, index, float(x_value), variable, float(values[index]), units.get(variable)),
            )
    connection.executemany(
        "INSERT INTO profile (run_id, step, x, var, value, unit) VALUES (?, ?, ?, ?, ?, ?)",
        rows_list,
    )
    connection.commit()


def save_output(connection: sqlite3.Connection, run_id: int, output: ChemicalOutput, x_quantity: str | None = None) -> None:
    """Save the records of a :class:`ChemicalOutput` as the profile of a run.

    ``x_quantity`` selects the abscissa among the output quantities; by
    default the first time quantity (``t`` or ``time``), else the step index.
    """
    quantities = list(output.options.quantities)
    specs = {q: parse_quantity(q) for q in quantities}
    if x_quantity is None:
        x_quantity = next((q for q in quantities if specs[q].name in ("t", "time")), None)
    if x_quantity is None:
        x_values = [float(i) for i in range(len(output.records))]
    else:
        x_values = [record[x_quantity] for record in output.records]
    series = {q: [record[q] for record in output.records] for q in quantities}
    units = {q: specs[q].unit for q in quantities}
    save_profile(connection, run_id, x_values, series, units)


def load_profile(connection: sqlite3.Connection, run_id: int) -> tuple[list[float], dict[str, list[float]], dict[str, str | None]]:
    """Return the abscissa, the series and their units stored for a run."""
    rows = connection.execute(
        "SELECT step, x, var, value, unit FROM profile WHERE run_id = ? ORDER BY step",
        (run_id,),
    ).fetchall()
    x_by_step: dict[int, float] = {}
    series: dict[str, list[float]] = {}
    units: dict[str, str | None] = {}
    for step, x_value, variable, value, unit in rows:
        x_by_step[step] = x_value
        series.setdefault(variable, []).append(value)
        units[variable] = unit
    return [x_by_step[step] for step in sorted(x_by_step)], series, units


def latest_run_id(connection: sqlite3.Connection) -> int | None:
    row = connection.execute("SELECT MAX(id) FROM run").fetchone()
    return None if row is None or row[0] is None else int(row[0])


def _json_dumps(payload: Mapping[str, object]) -> str:
    return json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()
