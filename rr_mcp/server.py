#!/usr/bin/env python3
import asyncio
import json
import logging
import sys
import threading
from typing import Any, Dict, Optional, Set

from rr_mcp.log import error_log
from rr_mcp.manifest import ServerManifest, load_manifest

DEFAULT_PROTOCOL_VERSION = "2024-11-05"

logger = logging.getLogger(__name__)


class McpServer:
    def __init__(self, manifest: ServerManifest, log: Optional[logging.Logger] = None):
        self.manifest = manifest
        self.tools = manifest.tool_table()
        self.log = log or logger

    async def handle_request(self, req: Any) -> Optional[Dict[str, Any]]:
        if not isinstance(req, dict):
            return {"jsonrpc": "2.0", "id": None, "error": {"code": -32600, "message": "Invalid request"}}

        method = req.get("method")
        req_id = req.get("id")

        # Notifications carry no id and get no reply
        if req_id is None:
            return None

        def error(message: str, code: int = -32000):
            return {"jsonrpc": "2.0", "id": req_id, "error": {"code": code, "message": message}}

        def result(value: Dict[str, Any]):
            return {"jsonrpc": "2.0", "id": req_id, "result": value}

        params = req.get("params") or {}
        if not isinstance(params, dict):
            return error("Invalid params", code=-32602)

        if method == "initialize":
            return result({
                "protocolVersion": params.get("protocolVersion") or DEFAULT_PROTOCOL_VERSION,
                "capabilities": {"tools": {}},
                "serverInfo": {"name": self.manifest.name, "version": self.manifest.version},
            })

        if method == "ping":
            return result({})

        # tools/list
        if method == "tools/list":
            return result({"tools": [tool.describe() for tool in self.tools.values()]})

        # tools/call
        if method == "tools/call":
            name = params.get("name")
            arguments = params.get("arguments") or {}

            tool = self.tools.get(name)
            if tool is None:
                return error(f"Unknown tool: {name}")

            if not isinstance(arguments, dict):
                return error("Invalid params: 'arguments' must be an object", code=-32602)

            argument = arguments.get(tool.parameter_name)
            if argument is not None and not isinstance(argument, str):
                return error(f"Field '{tool.parameter_name}' must be a string.")

            text = await tool.invoke(argument, log=self.log)
            return result({"content": [{"type": "text", "text": text}]})

        return error(f"Method not found: {method}", code=-32601)


def send(msg: Dict[str, Any], stdout=None):
    stdout = stdout or sys.stdout
    stdout.write(json.dumps(msg) + "\n")
    stdout.flush()


async def _respond(server: McpServer, req: Any, stdout) -> None:
    try:
        resp = await server.handle_request(req)
    except Exception as e:
        server.log.error("Failed to handle request", exc_info=True)
        req_id = req.get("id") if isinstance(req, dict) else None
        resp = {"jsonrpc": "2.0", "id": req_id, "error": {"code": -32603, "message": str(e)}}
    if resp is not None:
        send(resp, stdout)


def _pump_lines(stdin, loop: asyncio.AbstractEventLoop, queue: "asyncio.Queue[str]") -> None:
    # Runs on a daemon thread so a blocked readline never holds up shutdown.
    try:
        for line in iter(stdin.readline, ""):
            loop.call_soon_threadsafe(queue.put_nowait, line)
        loop.call_soon_threadsafe(queue.put_nowait, "")
    except RuntimeError:
        # Event loop already closed
        pass


async def serve(server: McpServer, stdin=None, stdout=None) -> None:
    """Read one JSON message per line; each request runs in its own task."""
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    loop = asyncio.get_running_loop()
    lines: "asyncio.Queue[str]" = asyncio.Queue()
    pending: Set[asyncio.Task] = set()

    threading.Thread(target=_pump_lines, args=(stdin, loop, lines), name="rr-mcp-stdin", daemon=True).start()

    while True:
        line = await lines.get()
        if not line:
            break
        line = line.strip()
        if not line:
            continue
        try:
            req = json.loads(line)
        except json.JSONDecodeError as e:
            send({"jsonrpc": "2.0", "id": None, "error": {"code": -32700, "message": f"Parse error: {e}"}}, stdout)
            continue

        task = asyncio.create_task(_respond(server, req, stdout))
        pending.add(task)
        task.add_done_callback(pending.discard)

    if pending:
        await asyncio.gather(*pending)


def main():
    with error_log() as log:
        try:
            server = McpServer(load_manifest(), log=log)
            log.info("%s %s: %d tools", server.manifest.name, server.manifest.version, len(server.tools))
            asyncio.run(serve(server))
        except KeyboardInterrupt:
            pass
        except Exception:
            log.critical("Fatal error in MCP server", exc_info=True)
            raise


if __name__ == "__main__":
    main()
