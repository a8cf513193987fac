# providers/local_executor.py
from __future__ import annotations

import subprocess
import time
from typing import Optional

from executor import ExecutionTimeout, SpawnFailure
from models import CommandDescriptor, ExecutionOutcome


class LocalExecutor:
    """Runs the descriptor directly (no shell) and captures its output."""

    def __init__(self, default_timeout_ms: Optional[int] = 30000) -> None:
        self.default_timeout_ms = default_timeout_ms

    def execute(self, cmd: CommandDescriptor) -> ExecutionOutcome:
        timeout_ms = cmd.timeout_ms or self.default_timeout_ms
        timeout = timeout_ms / 1000 if timeout_ms else None
        start = time.monotonic()
        try:
            proc = subprocess.run(
                [cmd.executable, *cmd.arguments],
                cwd=cmd.working_dir,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise ExecutionTimeout(f"'{cmd.command_line}' timed out after {timeout_ms}ms", timeout_ms or 0) from exc
        except (OSError, ValueError) as exc:
            # ValueError: argv the OS cannot take, e.g. embedded NUL bytes
            raise SpawnFailure(f"Failed to start '{cmd.executable}': {exc}") from exc

        duration_ms = int((time.monotonic() - start) * 1000)
        succeeded = proc.returncode == 0
        return ExecutionOutcome(
            succeeded=succeeded,
            exit_code=proc.returncode,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
            duration_ms=duration_ms,
            failure_message=None if succeeded else f"Command exited with code {proc.returncode}",
        )
