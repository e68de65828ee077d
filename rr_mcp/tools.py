import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from rr_mcp.script_runner import run_script

DEFAULT_SOLUTION_FILE = "MySolution.sln"


@dataclass(frozen=True)
class ToolEndpoint:
    name: str
    description: str
    script_name: str
    script_folder: str
    parameter_name: str = "solutionFile"
    parameter_description: str = "Path to the solution .sln file"
    default_argument: str = DEFAULT_SOLUTION_FILE

    def input_schema(self) -> Dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                self.parameter_name: {
                    "type": "string",
                    "description": self.parameter_description,
                    "default": self.default_argument,
                },
            },
            "additionalProperties": False,
        }

    def describe(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema(),
        }

    async def invoke(
        self,
        solution_file: Optional[str] = None,
        *,
        log: Optional[logging.Logger] = None,
    ) -> str:
        # The script itself validates the argument.
        if solution_file is None:
            solution_file = self.default_argument
        return await run_script(
            self.script_name,
            self.script_folder,
            solution_file,
            log=log,
        )
