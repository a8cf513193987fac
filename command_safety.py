from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from models import CommandDescriptor, RiskLevel, RiskVerdict


# Commands historically capable of destroying state or altering the running system.
DESTRUCTIVE_COMMANDS = {
    "rm",
    "rmdir",
    "unlink",
    "mv",
    "dd",
    "fdisk",
    "mkfs",
    "format",
    "shutdown",
    "reboot",
    "halt",
    "poweroff",
    "init",
    "systemctl",
    "service",
    "launchctl",
    "kill",
    "killall",
    "pkill",
    "chmod",
    "chown",
    "chgrp",
}

SYSTEM_PATHS = (
    "/boot",
    "/etc",
    "/usr",
    "/lib",
    "/lib64",
    "/sbin",
    "/bin",
    "/sys",
    "/proc",
    "/dev",
    "/root",
)

PACKAGE_MANAGERS = {"apt", "apt-get", "yum", "dnf", "pacman", "zypper", "apk", "brew"}

FILE_DELETION_COMMANDS = {"rm", "rmdir", "unlink"}

PATH_PREFIXES = ("/", "./", "../")

# Highly destructive signatures, matched on the executable once any sudo/doas
# wrapper is stripped.
POWER_COMMANDS = {"shutdown", "reboot", "halt", "poweroff"}
SYSTEMCTL_POWER_VERBS = {"reboot", "poweroff", "halt"}
PARTITION_COMMANDS = {"fdisk", "sfdisk", "gdisk", "parted"}
FORMAT_COMMANDS = {"mkfs", "mke2fs"}

PRIVILEGE_WRAPPERS = {"sudo", "doas"}
_WRAPPER_OPTIONS_WITH_VALUE = {"-u", "-g", "-C", "-D", "-p", "-U"}

_RECURSIVE_FLAG = re.compile(r"^-[a-zA-Z]*[rR][a-zA-Z]*$")

ROLLBACK_RESTORE = "Restore files from backup"
ROLLBACK_PACKAGE = "Use package manager to reverse operation"
ROLLBACK_MANUAL = "Manual intervention may be required for rollback"


@dataclass(frozen=True)
class _CommandContext:
    descriptor: CommandDescriptor
    name: str
    paths: Tuple[str, ...]
    system_paths: Tuple[str, ...]


@dataclass(frozen=True)
class RiskRule:
    name: str
    predicate: Callable[[_CommandContext], bool]
    level_floor: RiskLevel
    reason: str
    backup: bool = False

    def describe(self, ctx: _CommandContext) -> str:
        return self.reason.format(
            name=ctx.name,
            system_paths=", ".join(ctx.system_paths),
        )


def command_name(executable: str) -> str:
    return os.path.basename(executable.strip())


def _cwd() -> str:
    try:
        return os.getcwd()
    except OSError:
        # cwd was removed underneath us
        return "/"


def canonicalize(arg: str, base_dir: Optional[str] = None) -> str:
    if os.path.isabs(arg):
        joined = arg
    else:
        base = base_dir or _cwd()
        if not os.path.isabs(base):
            base = os.path.join(_cwd(), base)
        joined = os.path.join(base, arg)
    canonical = os.path.normpath(joined)
    # POSIX normpath keeps a leading "//"
    while canonical.startswith("//"):
        canonical = canonical[1:]
    return canonical


def extract_paths(args: Sequence[str], base_dir: Optional[str] = None) -> Tuple[str, ...]:
    """Absolute, deduplicated paths for every argument that looks like a path."""
    seen: List[str] = []
    for arg in args:
        if not isinstance(arg, str) or not arg.startswith(PATH_PREFIXES):
            continue
        path = canonicalize(arg, base_dir)
        if path not in seen:
            seen.append(path)
    return tuple(seen)


def is_system_path(path: str) -> bool:
    # prefix match on whole components: /etcetera is not /etc
    return any(path == sys_path or path.startswith(sys_path + "/") for sys_path in SYSTEM_PATHS)


def is_package_manager(executable: str) -> bool:
    return command_name(executable) in PACKAGE_MANAGERS


def _effective_argv(cmd: CommandDescriptor) -> List[str]:
    """argv with leading sudo/doas wrappers (and their options) removed."""
    argv = [cmd.executable, *cmd.arguments]
    while argv and command_name(argv[0]) in PRIVILEGE_WRAPPERS:
        argv.pop(0)
        while argv and argv[0].startswith("-"):
            option = argv.pop(0)
            if option == "--":
                break
            if option in _WRAPPER_OPTIONS_WITH_VALUE and argv:
                argv.pop(0)
    if argv:
        argv[0] = command_name(argv[0])
    return argv


def _deletes_root(args: Sequence[str], base_dir: Optional[str]) -> bool:
    if not any(arg == "--recursive" or _RECURSIVE_FLAG.match(arg) for arg in args):
        return False
    for arg in args:
        if not arg.startswith(PATH_PREFIXES):
            continue
        # "/*", "/./*" and friends empty the root just like "/"
        target = arg[:-1] if arg.endswith("/*") else arg
        if canonicalize(target, base_dir) == "/":
            return True
    return False


def is_highly_destructive(cmd: CommandDescriptor) -> bool:
    argv = _effective_argv(cmd)
    if not argv:
        return False
    name, args = argv[0], argv[1:]
    operands = [a for a in args if not a.startswith("-")]

    if name == "rm":
        return _deletes_root(args, cmd.working_dir)
    if name == "dd":
        return any(a.startswith("of=/dev/") for a in args)
    if name in FORMAT_COMMANDS or name.startswith("mkfs."):
        return True
    if name in PARTITION_COMMANDS or name in POWER_COMMANDS:
        return True
    if name == "systemctl":
        return bool(operands) and operands[0] in SYSTEMCTL_POWER_VERBS
    if name == "init":
        return bool(operands) and operands[0] in ("0", "6")
    return False


def _is_destructive_executable(ctx: _CommandContext) -> bool:
    return ctx.name in DESTRUCTIVE_COMMANDS or ctx.name.startswith("mkfs.")


RULES: List[RiskRule] = [
    RiskRule(
        name="destructive-executable",
        predicate=_is_destructive_executable,
        level_floor=RiskLevel.MEDIUM,
        reason="Potentially destructive command: {name}",
    ),
    RiskRule(
        name="system-path",
        predicate=lambda ctx: bool(ctx.system_paths),
        level_floor=RiskLevel.HIGH,
        reason="Modifying system path: {system_paths}",
        backup=True,
    ),
    RiskRule(
        name="requires-root",
        predicate=lambda ctx: ctx.descriptor.requires_root,
        level_floor=RiskLevel.MEDIUM,
        reason="Requires root privileges",
    ),
    RiskRule(
        name="package-manager",
        predicate=lambda ctx: ctx.name in PACKAGE_MANAGERS,
        level_floor=RiskLevel.LOW,
        reason="Package management operation",
    ),
    RiskRule(
        name="highly-destructive",
        predicate=lambda ctx: is_highly_destructive(ctx.descriptor),
        level_floor=RiskLevel.DESTRUCTIVE,
        reason="Highly destructive operation detected",
        backup=True,
    ),
]


def rollback_hint_for(executable: str) -> str:
    name = command_name(executable)
    if name in FILE_DELETION_COMMANDS:
        return ROLLBACK_RESTORE
    if name in PACKAGE_MANAGERS:
        return ROLLBACK_PACKAGE
    return ROLLBACK_MANUAL


def _context(cmd: CommandDescriptor) -> _CommandContext:
    paths = extract_paths(cmd.arguments, cmd.working_dir)
    return _CommandContext(
        descriptor=cmd,
        name=command_name(cmd.executable),
        paths=paths,
        system_paths=tuple(p for p in paths if is_system_path(p)),
    )


def classify(cmd: CommandDescriptor, rules: Optional[Sequence[RiskRule]] = None) -> RiskVerdict:
    """
    Evaluate every rule in order. A matching rule can only raise the level
    (lattice join) and contributes exactly one reason. Unknown commands are SAFE.
    """
    ctx = _context(cmd)
    level = RiskLevel.SAFE
    reasons: List[str] = []
    backup_required = False

    for rule in RULES if rules is None else rules:
        if not rule.predicate(ctx):
            continue
        level = level.join(rule.level_floor)
        reasons.append(rule.describe(ctx))
        backup_required = backup_required or rule.backup

    return RiskVerdict(
        level=level,
        reasons=tuple(reasons),
        backup_required=backup_required,
        rollback_hint=rollback_hint_for(cmd.executable) if backup_required else None,
        affected_paths=ctx.paths,
    )


def dry_run_required(verdict: RiskVerdict, enabled: bool) -> bool:
    return enabled and verdict.confirmation_required
