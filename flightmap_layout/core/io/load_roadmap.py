from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import yaml

from flightmap_layout.core.errors import RoadmapLoadError


# suffix -> (parse error code, parser)
_PARSERS: dict[str, tuple[str, Callable[[str], Any]]] = {
    ".yaml": ("E_YAML_PARSE", yaml.safe_load),
    ".yml": ("E_YAML_PARSE", yaml.safe_load),
    ".json": ("E_JSON_PARSE", json.loads),
}


def load_roadmap(path: str) -> dict[str, Any]:
    """Read a roadmap document (roadmap -> strategies -> programs -> ...).

    Only the container is checked here; field types are left to the
    hierarchy builder, which degrades anything malformed to defaults.
    """
    p = Path(path)
    if not p.is_file():
        raise RoadmapLoadError(code="E_FILE_NOT_FOUND", message="file does not exist", file=str(p))

    parser = _PARSERS.get(p.suffix.lower())
    if parser is None:
        supported = ", ".join(sorted(_PARSERS))
        raise RoadmapLoadError(
            code="E_UNSUPPORTED_FORMAT",
            message=f"unsupported roadmap format {p.suffix or '(none)'}; expected one of: {supported}",
            file=str(p),
        )
    parse_code, parse = parser

    try:
        text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise RoadmapLoadError(code="E_FILE_READ", message=str(e), file=str(p)) from e

    try:
        data = parse(text)
    except (yaml.YAMLError, ValueError) as e:
        raise RoadmapLoadError(code=parse_code, message=str(e), file=str(p)) from e

    if not isinstance(data, dict):
        raise RoadmapLoadError(
            code="E_INVALID_TOP_LEVEL",
            message=f"roadmap must be a mapping, got {type(data).__name__}",
            file=str(p),
        )
    return data


def dataset_id_for(data: dict[str, Any], fallback: str = "default") -> str:
    """Scope id for persisted layout overrides: the roadmap id when there is one."""
    rid = data.get("id")
    if rid is None or isinstance(rid, (dict, list)):
        return fallback
    text = str(rid).strip()
    return text or fallback
