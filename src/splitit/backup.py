"""JSON backup export and import.

Backups written by :func:`export_state` are the pydantic dump of a
:class:`~splitit.models.LedgerState`. :func:`import_state` also reads backups
from the browser version of the app, which used camelCase keys and called
ledger entries ``expenses``.
"""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .exceptions import InvalidBackupError
from .models import AppSettings, LedgerState

logger = logging.getLogger(__name__)

DEFAULT_BACKUP_NAME = "splitit_backup.json"


def export_state(state: LedgerState, path: Path) -> Path:
    """
    Write a ledger snapshot to a JSON file.

    Args:
        state: Snapshot to write
        path: Target file, or a directory to write the default file name into

    Returns:
        Path of the written file
    """
    if path.is_dir():
        path = path / DEFAULT_BACKUP_NAME
    path.write_text(state.model_dump_json(indent=2), encoding="utf-8")
    logger.info(
        f"Exported {len(state.people)} people, {len(state.groups)} groups, "
        f"{len(state.entries)} entries to {path}"
    )
    return path


def import_state(path: Path) -> LedgerState:
    """
    Read a ledger snapshot from a JSON backup.

    Missing top-level sections default to empty and settings are merged over
    the defaults.

    Raises:
        InvalidBackupError: If the file can't be read or isn't a valid ledger
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise InvalidBackupError(f"Failed to read backup {path}: {e}") from e

    if not isinstance(data, dict):
        raise InvalidBackupError(f"Invalid backup {path}: expected a JSON object")

    if "expenses" in data and "entries" not in data:
        logger.info("Reading browser-format backup")
        data = _from_browser_format(data)

    settings = AppSettings().model_dump()
    settings.update(_object(data.get("settings"), "settings"))

    try:
        return LedgerState.model_validate(
            {
                "people": data.get("people") or [],
                "groups": data.get("groups") or [],
                "entries": data.get("entries") or [],
                "settings": settings,
            }
        )
    except ValidationError as e:
        raise InvalidBackupError(f"Invalid backup {path}:\n{e}") from e


def _from_browser_format(data: dict[str, Any]) -> dict[str, Any]:
    """Translate the browser app's camelCase layout to LedgerState fields."""
    people = [
        {
            "id": p.get("id"),
            "name": p.get("name"),
            "contact": p.get("contact") or None,
            "notes": p.get("notes") or None,
            "is_you": bool(p.get("isYou")),
        }
        for p in _objects(data.get("people"), "people")
    ]
    groups = [
        {
            "id": g.get("id"),
            "name": g.get("name"),
            "description": g.get("description") or None,
            "member_ids": g.get("memberIds") or [],
        }
        for g in _objects(data.get("groups"), "groups")
    ]
    entries = [_browser_entry(e) for e in _objects(data.get("expenses"), "expenses")]
    settings = _object(data.get("settings"), "settings")
    return {
        "people": people,
        "groups": groups,
        "entries": entries,
        "settings": {
            key: value
            for key, value in {
                "currency_symbol": settings.get("currencySymbol"),
                "theme": settings.get("theme"),
            }.items()
            if value
        },
    }


def _browser_entry(e: dict[str, Any]) -> dict[str, Any]:
    entry = {
        "id": e.get("id"),
        "description": e.get("description"),
        "amount": str(e.get("amount")),
        "date": e.get("date"),
        "payer_id": e.get("payerId"),
        "splits": [
            {"person_id": s.get("personId"), "amount": str(s.get("amount"))}
            for s in _objects(e.get("participantSplits"), "participantSplits")
        ],
        "group_id": e.get("groupId") or None,
        "category": e.get("category") or "Other",
        "notes": e.get("notes") or "",
        "kind": e.get("type") or "expense",
    }
    if e.get("createdAt"):
        entry["created_at"] = e["createdAt"]
    return entry


def _object(value: Any, section: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise InvalidBackupError(f"Invalid backup: {section} must be an object")
    return value


def _objects(value: Any, section: str) -> list[dict[str, Any]]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, dict) for v in value):
        raise InvalidBackupError(f"Invalid backup: {section} must be a list of objects")
    return value
