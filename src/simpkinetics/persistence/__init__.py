"""Persistence helpers for SimpKinetics."""

from simpkinetics.persistence.sqlite_store import (
    connect,
    create_project,
    ensure_schema,
    latest_run_id,
    load_profile,
    save_output,
    save_profile,
    save_reactions,
    save_run,
)

__all__ = [
    "connect",
    "create_project",
    "ensure_schema",
    "latest_run_id",
    "load_profile",
    "save_output",
    "save_profile",
    "save_reactions",
    "save_run",
]
