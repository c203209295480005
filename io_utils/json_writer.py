from __future__ import annotations

import json
from pathlib import Path
from typing import Any


def dump_json(payload: Any, pretty: bool = True) -> str:
    if pretty:
        return json.dumps(payload, ensure_ascii=False, indent=2, default=str)
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"), default=str)


def write_json(path: str | Path, payload: Any, pretty: bool = True) -> Path:
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(dump_json(payload, pretty=pretty), encoding="utf-8")
    return output_path


def load_json_list(path: str | Path, key: str | None = None) -> list[Any]:
    """Read a JSON array, or the array under ``key`` when the root is an object."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, dict) and key is not None:
        data = data.get(key)
    if not isinstance(data, list):
        raise ValueError(f"JSON root must be array: {path}")
    return data
