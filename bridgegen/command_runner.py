"""Synchronous invocation of external tools with captured output"""

import logging
import shlex
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

from .errors import MissingExecutableError

logger = logging.getLogger(__name__)


@dataclass
class ToolResult:
    """Exit status and captured streams of one tool run"""
    args: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.returncode == 0


def execute_command(program: str, args: Sequence[Union[str, Path]],
                    cwd: Optional[Union[str, Path]] = None) -> ToolResult:
    """Run a tool to completion; never retries"""
    command = [program, *(str(a) for a in args)]
    logger.debug("execute %s (cwd=%s)", shlex.join(command), cwd)
    start = time.perf_counter()
    try:
        proc = subprocess.run(
            command, cwd=cwd, capture_output=True, text=True, errors='replace')
    except FileNotFoundError as exc:
        raise MissingExecutableError(program) from exc
    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.debug("%s exited with %d after %.0f ms", program, proc.returncode, elapsed_ms)
    return ToolResult(args=command, returncode=proc.returncode, stdout=proc.stdout, stderr=proc.stderr)
