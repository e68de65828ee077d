import os
from pathlib import Path
from typing import Optional

PACKAGE_DIR = Path(__file__).resolve().parent

DEFAULT_PWSH = "pwsh"
LOG_FILE_NAME = "mcp_errors.log"


def pwsh_executable() -> str:
    return os.environ.get("RR_MCP_PWSH", DEFAULT_PWSH).strip() or DEFAULT_PWSH


def base_dir() -> Path:
    """Directory of the running program: script lookup root and default log dir."""
    raw = (os.environ.get("RR_MCP_BASE_DIR") or "").strip()
    return Path(raw) if raw else PACKAGE_DIR


def log_dir() -> Path:
    raw = (os.environ.get("RR_MCP_LOG_DIR") or "").strip()
    return Path(raw) if raw else base_dir()


def manifest_path() -> Optional[Path]:
    raw = (os.environ.get("RR_MCP_MANIFEST") or "").strip()
    return Path(raw) if raw else None
