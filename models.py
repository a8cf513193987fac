# models.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, Dict, Optional, Sequence, Tuple
from uuid import UUID


class RiskLevel(IntEnum):
    SAFE = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    DESTRUCTIVE = 4

    def join(self, other: "RiskLevel") -> "RiskLevel":
        """Lattice join: the more dangerous of the two levels."""
        return max(self, RiskLevel(other))


class BackupKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"
    PACKAGE = "package"
    SERVICE = "service"


@dataclass(frozen=True)
class CommandDescriptor:
    executable: str
    arguments: Tuple[str, ...] = ()
    working_dir: Optional[str] = None
    requires_root: bool = False
    description: str = ""
    timeout_ms: Optional[int] = None

    def __post_init__(self) -> None:
        # accept any sequence of args but store an immutable tuple of strings
        object.__setattr__(self, "arguments", tuple(str(a) for a in (self.arguments or ())))

    @classmethod
    def build(cls, argv: Sequence[str], **kwargs: Any) -> "CommandDescriptor":
        if not argv:
            raise ValueError("Command must contain at least an executable.")
        return cls(executable=argv[0], arguments=tuple(argv[1:]), **kwargs)

    @property
    def command_line(self) -> str:
        return " ".join([self.executable, *self.arguments])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "executable": self.executable,
            "arguments": list(self.arguments),
            "working_dir": self.working_dir,
            "requires_root": self.requires_root,
            "description": self.description,
            "timeout_ms": self.timeout_ms,
        }


@dataclass(frozen=True)
class RiskVerdict:
    level: RiskLevel = RiskLevel.SAFE
    reasons: Tuple[str, ...] = ()
    backup_required: bool = False
    rollback_hint: Optional[str] = None
    affected_paths: Tuple[str, ...] = ()

    @property
    def confirmation_required(self) -> bool:
        return self.level >= RiskLevel.MEDIUM

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level.name,
            "reasons": list(self.reasons),
            "confirmation_required": self.confirmation_required,
            "backup_required": self.backup_required,
            "rollback_hint": self.rollback_hint,
            "affected_paths": list(self.affected_paths),
        }


@dataclass(frozen=True)
class BackupRecord:
    id: UUID
    created_at: datetime
    kind: BackupKind
    source_path: str
    snapshot_path: str
    size_bytes: int
    checksum: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "created_at": self.created_at.isoformat(),
            "kind": self.kind.value,
            "source_path": self.source_path,
            "snapshot_path": self.snapshot_path,
            "size_bytes": self.size_bytes,
            "checksum": self.checksum,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BackupRecord":
        return cls(
            id=UUID(str(data["id"])),
            created_at=datetime.fromisoformat(data["created_at"]),
            kind=BackupKind(data["kind"]),
            source_path=data["source_path"],
            snapshot_path=data["snapshot_path"],
            size_bytes=int(data["size_bytes"]),
            checksum=data["checksum"],
        )


@dataclass(frozen=True)
class ExecutionOutcome:
    succeeded: bool
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0
    failure_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "succeeded": self.succeeded,
            "exit_code": self.exit_code,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "duration_ms": self.duration_ms,
            "failure_message": self.failure_message,
        }


@dataclass(frozen=True)
class OrchestrationResult:
    outcome: ExecutionOutcome
    verdict: RiskVerdict
    backup: Optional[BackupRecord] = None
    command: Optional[CommandDescriptor] = field(default=None, compare=False)

    @property
    def succeeded(self) -> bool:
        return self.outcome.succeeded

    def to_dict(self) -> Dict[str, Any]:
        return {
            "command": self.command.to_dict() if self.command else None,
            "outcome": self.outcome.to_dict(),
            "verdict": self.verdict.to_dict(),
            "backup": self.backup.to_dict() if self.backup else None,
        }
