# executor.py
from __future__ import annotations

from typing import Protocol

from config import SysguardConfig
from models import CommandDescriptor, ExecutionOutcome


class ExecutionTimeout(Exception):
    def __init__(self, message: str, timeout_ms: int) -> None:
        super().__init__(message)
        self.timeout_ms = timeout_ms


class SpawnFailure(Exception):
    pass


class CommandExecutor(Protocol):
    def execute(self, cmd: CommandDescriptor) -> ExecutionOutcome:
        ...


def make_executor(config: SysguardConfig) -> CommandExecutor:
    provider = config.executor.lower()
    if provider in ("dry-run", "dry_run", "dry"):
        from providers.dry_run_executor import DryRunExecutor
        return DryRunExecutor()
    if provider != "local":
        raise ValueError(f"Unknown executor provider: {config.executor}")
    from providers.local_executor import LocalExecutor
    return LocalExecutor(default_timeout_ms=config.timeout_ms)
