# planner.py
from typing import Dict, List, Optional, Sequence

from models import CommandDescriptor
from system_detect import PackageManager
from utils import parse_size, validate_package_name

SERVICE_ACTIONS = ("start", "stop", "restart", "status", "enable", "disable")
ROOT_SERVICE_ACTIONS = {"start", "stop", "restart", "enable", "disable"}
PROCESS_ACTIONS = ("list", "kill", "info")
LAUNCHD_DIR = "/Library/LaunchDaemons"


def _require_package_manager(pm: PackageManager) -> None:
    if not pm.known:
        raise ValueError("No supported package manager found")


def _check_packages(packages: Sequence[str]) -> List[str]:
    if not packages:
        raise ValueError("At least one package name is required")
    invalid = [p for p in packages if not validate_package_name(p)]
    if invalid:
        raise ValueError(f"Invalid package names: {', '.join(invalid)}")
    return list(packages)


def plan_install(pm: PackageManager, packages: Sequence[str], update_first: bool = False) -> List[CommandDescriptor]:
    _require_package_manager(pm)
    packages = _check_packages(packages)
    steps: List[CommandDescriptor] = []
    if update_first:
        steps.append(CommandDescriptor.build(pm.refresh, requires_root=True, description="Update package lists"))
    steps.append(
        CommandDescriptor.build(
            [*pm.install, *packages],
            requires_root=True,
            description=f"Install packages: {', '.join(packages)}",
        )
    )
    return steps


def plan_remove(pm: PackageManager, packages: Sequence[str], purge: bool = False) -> List[CommandDescriptor]:
    _require_package_manager(pm)
    packages = _check_packages(packages)
    base = ("apt", "purge") if purge and pm.name == "apt" else pm.remove
    return [
        CommandDescriptor.build(
            [*base, *packages],
            requires_root=True,
            description=f"Remove packages: {', '.join(packages)}",
        )
    ]


def plan_service(os_name: str, service: str, action: str) -> List[CommandDescriptor]:
    if not service or not service.strip():
        raise ValueError("Service parameter is required and must be a non-empty string")
    if action not in SERVICE_ACTIONS:
        raise ValueError(f"Unknown service action: {action}")

    description = f"{action} service: {service}"
    if os_name != "darwin":
        return [
            CommandDescriptor(
                executable="systemctl",
                arguments=(action, service),
                requires_root=action in ROOT_SERVICE_ACTIONS,
                description=description,
            )
        ]

    plist = f"{LAUNCHD_DIR}/{service}.plist"
    if action == "start":
        args = ("load", "-w", plist)
    elif action == "stop":
        args = ("unload", "-w", plist)
    elif action == "status":
        args = ("list", service)
    else:
        raise ValueError(f"Action {action} not supported on macOS")
    return [
        CommandDescriptor(
            executable="launchctl",
            arguments=args,
            requires_root=action in ROOT_SERVICE_ACTIONS,
            description=description,
        )
    ]


def plan_processes(
    action: str,
    pid: Optional[int] = None,
    name: Optional[str] = None,
    signal: str = "TERM",
) -> List[CommandDescriptor]:
    if action == "list":
        suffix = f" matching: {name}" if name else ""
        return [CommandDescriptor("ps", ("aux",), description=f"List processes{suffix}")]
    if action == "kill":
        if pid is None and not name:
            raise ValueError("Either pid or name must be provided for kill action")
        if pid is not None:
            return [
                CommandDescriptor(
                    "kill",
                    (f"-{signal}", str(pid)),
                    description=f"Kill process PID {pid} with signal {signal}",
                )
            ]
        return [
            CommandDescriptor(
                "pkill",
                (f"-{signal}", name),
                description=f"Kill process named {name} with signal {signal}",
            )
        ]
    if action == "info":
        if pid is None:
            raise ValueError("PID must be provided for info action")
        return [
            CommandDescriptor(
                "ps",
                ("-p", str(pid), "-o", "pid,ppid,user,time,comm,args"),
                description=f"Get info for process PID {pid}",
            )
        ]
    raise ValueError(f"Unknown action: {action}")


def plan_cleanup(
    target: str,
    recursive: bool = False,
    dry_run: bool = True,
    extensions: Optional[Sequence[str]] = None,
    age_in_days: Optional[int] = None,
    size_limit: Optional[str] = None,
) -> List[CommandDescriptor]:
    if not target or not target.strip():
        raise ValueError("Target parameter is required and must be a non-empty string")

    args: List[str] = [target]
    if not recursive:
        args += ["-maxdepth", "1"]
    args += ["-type", "f"]

    exts = [e.lstrip(".") for e in (extensions or []) if e.strip(".")]
    if exts:
        args.append("(")
        for i, ext in enumerate(exts):
            if i:
                args.append("-o")
            args += ["-name", f"*.{ext}"]
        args.append(")")
    if age_in_days is not None:
        args += ["-mtime", f"+{int(age_in_days)}"]
    if size_limit:
        kib = max(parse_size(size_limit) // 1024, 0)
        args += ["-size", f"+{kib}k"]

    args.append("-print")
    if not dry_run:
        args.append("-delete")

    return [
        CommandDescriptor(
            "find",
            tuple(args),
            description=f"{'Preview cleanup of' if dry_run else 'Clean up'} files in: {target}",
        )
    ]


def plan_update(
    pm: PackageManager,
    update_package_list: bool = True,
    upgrade_packages: bool = False,
    security_only: bool = False,
) -> List[CommandDescriptor]:
    _require_package_manager(pm)
    steps: List[CommandDescriptor] = []
    if update_package_list:
        steps.append(CommandDescriptor.build(pm.refresh, requires_root=True, description="Update package lists"))
    if upgrade_packages:
        if security_only and pm.security_upgrade:
            steps.append(
                CommandDescriptor.build(
                    pm.security_upgrade, requires_root=True, description="Upgrade security packages only"
                )
            )
        else:
            steps.append(CommandDescriptor.build(pm.upgrade, requires_root=True, description="Upgrade all packages"))
    return steps


def plan_execute(
    command: str,
    args: Optional[Sequence[str]] = None,
    working_dir: Optional[str] = None,
    timeout_ms: Optional[int] = 30000,
) -> List[CommandDescriptor]:
    if not command or not command.strip():
        raise ValueError("Command parameter is required and must be a non-empty string")
    args = list(args or [])
    return [
        CommandDescriptor(
            executable=command,
            arguments=tuple(args),
            working_dir=working_dir,
            timeout_ms=timeout_ms,
            requires_root=False,
            description=f"Execute: {' '.join([command, *args])}",
        )
    ]


def describe_plan(steps: Sequence[CommandDescriptor]) -> List[Dict[str, object]]:
    return [step.to_dict() for step in steps]
