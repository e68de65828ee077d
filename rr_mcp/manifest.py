from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml  # PyYAML

from rr_mcp import config
from rr_mcp.tools import DEFAULT_SOLUTION_FILE, ToolEndpoint

DEFAULT_MANIFEST = config.PACKAGE_DIR / "manifest.yaml"


class ManifestError(ValueError):
    pass


@dataclass
class ServerManifest:
    name: str
    version: str
    description: str = ""
    tools: List[ToolEndpoint] = field(default_factory=list)

    def tool_table(self) -> Dict[str, ToolEndpoint]:
        return {tool.name: tool for tool in self.tools}


def _required_str(data: Dict[str, Any], key: str, where: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ManifestError(f"Invalid '{key}' field in {where}")
    return value.strip()


def _parse_tool(raw: Any, where: str) -> ToolEndpoint:
    if not isinstance(raw, dict):
        raise ManifestError(f"Invalid tool in {where}: expected a mapping")
    name = _required_str(raw, "name", where)
    where = f"{where} (tool {name})"

    param = raw.get("parameter") or {}
    if not isinstance(param, dict):
        raise ManifestError(f"Invalid 'parameter' field in {where}")

    return ToolEndpoint(
        name=name,
        description=str(raw.get("description") or "").strip(),
        script_name=_required_str(raw, "script", where),
        script_folder=_required_str(raw, "folder", where),
        parameter_name=str(param.get("name") or "solutionFile"),
        parameter_description=str(param.get("description") or ""),
        default_argument=str(param.get("default") or DEFAULT_SOLUTION_FILE),
    )


def load_manifest(path: Optional[Path] = None) -> ServerManifest:
    path = path or config.manifest_path() or DEFAULT_MANIFEST
    try:
        with Path(path).open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ManifestError(f"Error reading manifest {path}: {e}") from e
    if not isinstance(data, dict):
        raise ManifestError(f"{path} is not a YAML mapping")

    raw_tools = data.get("tools") or []
    if not isinstance(raw_tools, list):
        raise ManifestError(f"Invalid 'tools' field in manifest {path}")
    tools = [_parse_tool(raw, str(path)) for raw in raw_tools]

    names = [tool.name for tool in tools]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ManifestError(f"Duplicate tools in manifest {path}: {', '.join(duplicates)}")

    return ServerManifest(
        name=_required_str(data, "name", str(path)),
        version=_required_str(data, "version", str(path)),
        description=str(data.get("description") or "").strip(),
        tools=tools,
    )
