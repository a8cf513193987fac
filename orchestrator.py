# orchestrator.py
from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from backup_store import BackupError, BackupStore
from command_safety import classify
from config import SysguardConfig
from executor import CommandExecutor, ExecutionTimeout, SpawnFailure, make_executor
from ledger import BackupLedger
from models import (
    BackupKind,
    BackupRecord,
    CommandDescriptor,
    ExecutionOutcome,
    OrchestrationResult,
    RiskVerdict,
)

logger = logging.getLogger(__name__)

TIMEOUT_EXIT_CODE = 124
SPAWN_FAILURE_EXIT_CODE = 127


class CommandOrchestrator:
    """
    Single choke point for running host commands:
    classify -> (maybe) snapshot -> execute -> report.

    Backup failures never abort a run; the command still executes and the
    result simply carries no backup.
    """

    def __init__(
        self,
        config: SysguardConfig,
        executor: Optional[CommandExecutor] = None,
        store: Optional[BackupStore] = None,
        ledger: Optional[BackupLedger] = None,
        classifier: Callable[[CommandDescriptor], RiskVerdict] = classify,
    ) -> None:
        self.config = config
        self.executor = executor if executor is not None else make_executor(config)
        self.store = store if store is not None else BackupStore(config.backup_root)
        self.ledger = ledger
        self.classifier = classifier

    def _maybe_snapshot(self, verdict: RiskVerdict) -> Optional[BackupRecord]:
        if not (verdict.backup_required and verdict.affected_paths):
            return None
        # only the first affected path is protected
        source = verdict.affected_paths[0]
        try:
            record = self.store.snapshot(source, BackupKind.FILE)
        except BackupError as exc:
            logger.warning("Backup creation failed, continuing without backup: %s", exc)
            return None

        if self.ledger is not None:
            try:
                self.ledger.append(record)
            except (OSError, ValueError) as exc:
                logger.warning("Could not record backup %s in ledger: %s", record.id, exc)
        return record

    def _execute(self, cmd: CommandDescriptor, executor: CommandExecutor) -> ExecutionOutcome:
        start = time.monotonic()

        def elapsed() -> int:
            return int((time.monotonic() - start) * 1000)

        try:
            return executor.execute(cmd)
        except ExecutionTimeout as exc:
            logger.warning("%s", exc)
            return ExecutionOutcome(
                succeeded=False,
                exit_code=TIMEOUT_EXIT_CODE,
                duration_ms=elapsed(),
                stderr=str(exc),
                failure_message=str(exc),
            )
        except (SpawnFailure, OSError) as exc:
            logger.warning("%s", exc)
            return ExecutionOutcome(
                succeeded=False,
                exit_code=SPAWN_FAILURE_EXIT_CODE,
                duration_ms=elapsed(),
                stderr=str(exc),
                failure_message=str(exc),
            )

    def run(self, cmd: CommandDescriptor, executor: Optional[CommandExecutor] = None) -> OrchestrationResult:
        verdict = self.classifier(cmd)
        logger.debug("Classified %r as %s (%s)", cmd.command_line, verdict.level.name, "; ".join(verdict.reasons))

        backup = self._maybe_snapshot(verdict)
        outcome = self._execute(cmd, executor or self.executor)
        return OrchestrationResult(outcome=outcome, verdict=verdict, backup=backup, command=cmd)
