import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from rr_mcp import config

logger = logging.getLogger(__name__)

# Fallback folder name used when the server is started from the solution root.
PROJECT_DIR_NAME = "RR.MCP"

# Scripts print whole JSON documents on one line, so pipes are read in
# chunks rather than with readline (which caps the line length).
READ_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class ScriptRequest:
    script_name: str
    script_folder: str
    argument: str


@dataclass
class ProcessResult:
    exit_code: int
    stdout: str
    stderr: str


def candidate_paths(
    script_name: str,
    script_folder: str,
    base_dir: Optional[Path] = None,
    cwd: Optional[Path] = None,
) -> List[Path]:
    base_dir = base_dir if base_dir is not None else config.base_dir()
    cwd = cwd if cwd is not None else Path.cwd()
    return [
        base_dir / script_folder / script_name,
        cwd / script_folder / script_name,
        cwd / script_name,
        cwd / PROJECT_DIR_NAME / script_folder / script_name,
    ]


def locate_script(
    script_name: str,
    script_folder: str,
    base_dir: Optional[Path] = None,
    cwd: Optional[Path] = None,
) -> Optional[Path]:
    """Return the first candidate that is a regular file, or None."""
    for path in candidate_paths(script_name, script_folder, base_dir=base_dir, cwd=cwd):
        if path.is_file():
            return path
    return None


def build_command(executable: str, script_path: Path, argument: str) -> List[str]:
    return [
        executable,
        "-ExecutionPolicy", "Bypass",
        "-NoProfile",
        "-File", str(script_path),
        "-SolutionFile", argument,
    ]


def extract_payload(text: str, log: Optional[logging.Logger] = None) -> str:
    """Cut the span from the first '{' to the last '}' out of the script output.

    This is a heuristic, not a JSON parser: braces are not balanced, so two
    separate objects (or stray braces in log lines) end up merged into one
    span. Text without such a span is returned unchanged.
    """
    log = log or logger
    try:
        start = text.find("{")
        end = text.rfind("}")
        if start >= 0 and end > start:
            return text[start:end + 1]
        return text
    except Exception as e:
        log.error("Failed to process script output", exc_info=True)
        return f"Error processing script output: {e}"


async def _collect_lines(stream: Optional[asyncio.StreamReader], sink: List[str]) -> None:
    if stream is None:
        return
    data = bytearray()
    while True:
        chunk = await stream.read(READ_CHUNK_SIZE)
        if not chunk:
            break
        data.extend(chunk)
    # bytes.splitlines only breaks on \n, \r and \r\n
    sink.extend(line.decode("utf-8", errors="replace") for line in bytes(data).splitlines())


async def execute(request: ScriptRequest, script_path: Path, executable: str) -> ProcessResult:
    """Run the interpreter on the script and wait for it to exit."""
    proc = await asyncio.create_subprocess_exec(
        *build_command(executable, script_path, request.argument),
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    out_lines: List[str] = []
    err_lines: List[str] = []
    readers = [
        asyncio.ensure_future(_collect_lines(proc.stdout, out_lines)),
        asyncio.ensure_future(_collect_lines(proc.stderr, err_lines)),
    ]
    try:
        await asyncio.gather(*readers)
        exit_code = await proc.wait()
    finally:
        for reader in readers:
            reader.cancel()
        await asyncio.gather(*readers, return_exceptions=True)
        if proc.returncode is None:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
            await proc.wait()
    return ProcessResult(
        exit_code=exit_code,
        stdout="\n".join(out_lines),
        stderr="\n".join(err_lines),
    )


async def run_script(
    script_name: str,
    script_folder: str,
    solution_file: str,
    *,
    executable: Optional[str] = None,
    base_dir: Optional[Path] = None,
    log: Optional[logging.Logger] = None,
) -> str:
    """Run a PowerShell script against a solution file and return its JSON payload.

    Never raises: every failure is reported as a string starting with "Error".
    """
    log = log or logger
    request = ScriptRequest(script_name, script_folder, solution_file)
    try:
        script_path = locate_script(request.script_name, request.script_folder, base_dir=base_dir)
        if script_path is None:
            msg = f"Could not find {request.script_name} script in {request.script_folder}."
            log.error(msg)
            return f"Error: {msg}"

        result = await execute(request, script_path, executable or config.pwsh_executable())
        output = result.stdout.strip()

        if result.exit_code != 0:
            msg = f"PowerShell script error (code {result.exit_code}): {result.stderr}"
            log.error(msg)
            return f"Error: {msg}"

        if not output:
            msg = f"No output from script. Error: {result.stderr}"
            log.error(msg)
            return f"Error: {msg}"

        return extract_payload(output, log)
    except Exception as e:
        log.error("Exception while running %s", script_name, exc_info=True)
        return f"Error: {e}"
