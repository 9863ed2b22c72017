"""Persisted event artifact: a JSON array of event records."""

import json
from pathlib import Path
from typing import Any, Iterable, Union

from generators.models import Event

PathLike = Union[str, Path]


def save_events(events: Iterable[Event], path: PathLike) -> int:
    """Write events as a JSON array and return the file size in bytes."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    records = [event.to_record() for event in events]
    with open(path, "w") as f:
        json.dump(records, f, indent=2)
    return path.stat().st_size


def load_records(path: PathLike) -> list[dict[str, Any]]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Events file not found: {path}")
    with open(path) as f:
        records = json.load(f)
    if not isinstance(records, list):
        raise ValueError(f"{path} must contain a JSON array of events")
    return records


def load_events(path: PathLike) -> list[Event]:
    return [Event.from_record(record) for record in load_records(path)]
