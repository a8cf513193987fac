# providers/dry_run_executor.py
from __future__ import annotations

from models import CommandDescriptor, ExecutionOutcome


class DryRunExecutor:
    def execute(self, cmd: CommandDescriptor) -> ExecutionOutcome:
        return ExecutionOutcome(
            succeeded=True,
            exit_code=0,
            stdout=f"DRY RUN: Would execute: {cmd.command_line}",
            stderr="",
            duration_ms=0,
        )
