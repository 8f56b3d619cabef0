"""Import and export of home screen configurations as JSON files."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from homeconfig.configservice.validation import validate_config


class ConfigImportError(Exception):
    """Configuration file could not be imported."""


def export_config(record: dict[str, Any]) -> str:
    """Render a stored configuration as an importable JSON document."""
    document = {
        "schemaVersion": record.get("schemaVersion", 1),
        "data": record["data"],
    }
    return json.dumps(document, indent=2, ensure_ascii=False) + "\n"


def parse_config(raw: str) -> dict[str, Any]:
    """Parse and validate an exported document or a bare HomeScreenConfig."""
    try:
        document = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigImportError(f"Invalid JSON: {exc.msg} (line {exc.lineno})") from exc

    if isinstance(document, dict) and "data" in document:
        document = document["data"]

    error = validate_config(document)
    if error:
        raise ConfigImportError(error)
    return document


def load_config_file(path: str | Path) -> dict[str, Any]:
    config_path = Path(path).expanduser()
    if not config_path.exists():
        raise ConfigImportError(f"Config not found: {config_path}")
    return parse_config(config_path.read_text(encoding="utf-8"))
