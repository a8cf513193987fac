# main.py
import argparse
import json
import sys
from typing import Any, Dict, List, Optional, Sequence

from rich.console import Console
from rich.json import JSON as RichJSON
from rich.markup import escape
from rich.table import Table

from backup_store import BackupStore
from command_safety import classify
from config import SysguardConfig, configure_logging, load_config
from ledger import BackupLedger
from models import CommandDescriptor, RiskLevel, RiskVerdict
from orchestrator import CommandOrchestrator
from providers.dry_run_executor import DryRunExecutor
from tools import ToolError, ToolRegistry
from utils import format_bytes, format_duration, truncate_text

console = Console()

LEVEL_STYLES = {
    RiskLevel.SAFE: "green",
    RiskLevel.LOW: "cyan",
    RiskLevel.MEDIUM: "yellow",
    RiskLevel.HIGH: "red",
    RiskLevel.DESTRUCTIVE: "bold red",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sysguard", description="System administration with risk review and backups")
    parser.add_argument("--debug", action="store_true", help="enable debug logging")
    parser.add_argument("--json", action="store_true", help="print raw JSON results")
    parser.add_argument("--dry-run", action="store_true", help="classify and back up, but do not run anything")
    parser.add_argument("-y", "--yes", action="store_true", help="skip confirmation prompts")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("info", help="show system information")
    sub.add_parser("tools", help="print tool definitions")

    p = sub.add_parser("install", help="install packages")
    p.add_argument("packages", nargs="+")
    p.add_argument("--update-first", action="store_true")

    p = sub.add_parser("remove", help="remove packages")
    p.add_argument("packages", nargs="+")
    p.add_argument("--purge", action="store_true")

    p = sub.add_parser("service", help="control a system service")
    p.add_argument("action", choices=["start", "stop", "restart", "status", "enable", "disable"])
    p.add_argument("service")

    p = sub.add_parser("process", help="list, inspect or signal processes")
    p.add_argument("action", choices=["list", "kill", "info"])
    p.add_argument("--pid", type=int)
    p.add_argument("--name")
    p.add_argument("--signal", default="TERM")

    p = sub.add_parser("cleanup", help="find (and optionally delete) files")
    p.add_argument("target")
    p.add_argument("--recursive", action="store_true")
    p.add_argument("--execute", action="store_true", help="actually delete matched files")
    p.add_argument("--extensions", nargs="*", default=[])
    p.add_argument("--age-days", type=int)
    p.add_argument("--size-limit")

    p = sub.add_parser("update", help="refresh package lists and upgrade packages")
    p.add_argument("--no-refresh", action="store_true")
    p.add_argument("--upgrade", action="store_true")
    p.add_argument("--security-only", action="store_true")
    p.add_argument("--execute", action="store_true", help="run for real instead of a dry run")

    p = sub.add_parser("run", help="run an arbitrary command")
    p.add_argument("--cwd")
    p.add_argument("--timeout", type=int, default=30000, help="timeout in milliseconds")
    p.add_argument("argv", nargs=argparse.REMAINDER)

    p = sub.add_parser("classify", help="classify a command without running it")
    p.add_argument("--cwd")
    p.add_argument("--root", action="store_true", help="treat the command as requiring root")
    p.add_argument("argv", nargs=argparse.REMAINDER)

    sub.add_parser("backups", help="list recorded backups")

    p = sub.add_parser("verify", help="re-hash a backup and compare its checksum")
    p.add_argument("backup_id")
    return parser


def tool_request(args: argparse.Namespace) -> Optional[Dict[str, Any]]:
    """Map CLI arguments to (tool name, params)."""
    c = args.command
    if c == "info":
        return {"tool": "system_info", "params": {}}
    if c == "install":
        return {"tool": "install_package", "params": {"packages": args.packages, "update_first": args.update_first}}
    if c == "remove":
        return {"tool": "remove_package", "params": {"packages": args.packages, "purge": args.purge}}
    if c == "service":
        return {"tool": "manage_service", "params": {"service": args.service, "action": args.action}}
    if c == "process":
        return {
            "tool": "manage_processes",
            "params": {"action": args.action, "pid": args.pid, "name": args.name, "signal": args.signal},
        }
    if c == "cleanup":
        return {
            "tool": "cleanup_files",
            "params": {
                "target": args.target,
                "recursive": args.recursive,
                "dry_run": not args.execute,
                "filters": {
                    "extensions": args.extensions,
                    "age_in_days": args.age_days,
                    "size_limit": args.size_limit,
                },
            },
        }
    if c == "update":
        return {
            "tool": "update_system",
            "params": {
                "update_package_list": not args.no_refresh,
                "upgrade_packages": args.upgrade,
                "security_only": args.security_only,
                "dry_run": not args.execute,
            },
        }
    if c == "run":
        argv = strip_separator(args.argv)
        if not argv:
            raise ToolError("run: no command given")
        return {
            "tool": "execute_command",
            "params": {"command": argv[0], "args": argv[1:], "working_dir": args.cwd, "timeout": args.timeout},
        }
    return None


def strip_separator(argv: Sequence[str]) -> List[str]:
    argv = list(argv)
    if argv and argv[0] == "--":
        argv = argv[1:]
    return argv


def render_verdict(cmd: CommandDescriptor, verdict: RiskVerdict) -> None:
    style = LEVEL_STYLES[verdict.level]
    console.print(f"[bold]{escape(cmd.command_line)}[/bold]  [{style}]{verdict.level.name}[/{style}]")
    if cmd.description:
        console.print(f"  [dim]{escape(cmd.description)}[/dim]")
    for reason in verdict.reasons:
        console.print(f"  - {escape(reason)}")
    if verdict.affected_paths:
        console.print(f"  [dim]affected:[/dim] {escape(', '.join(verdict.affected_paths))}")
    if verdict.backup_required:
        console.print(f"  [dim]backup:[/dim] required  [dim]rollback:[/dim] {verdict.rollback_hint}")


def confirm(verdicts: Sequence[RiskVerdict]) -> bool:
    worst = max((v.level for v in verdicts), default=RiskLevel.SAFE)
    if worst >= RiskLevel.DESTRUCTIVE:
        ans = input("\nDestructive operation detected. Type 'run' to execute, anything else to cancel: ")
        return ans.strip().lower() == "run"
    ans = input("\nProceed? [y/N]: ").strip().lower()
    return ans == "y"


def render_result(payload: Dict[str, Any]) -> None:
    results = payload.get("results") or ([payload["result"]] if "result" in payload else [])
    if "outcome" in payload:
        results = [payload]
    for res in results:
        outcome = res["outcome"]
        status = "[green]ok[/green]" if outcome["succeeded"] else "[red]failed[/red]"
        cmd = res.get("command") or {}
        line = " ".join([cmd.get("executable", ""), *cmd.get("arguments", [])]).strip()
        console.rule(f"{escape(line)} {status}")
        if outcome["stdout"]:
            console.print(truncate_text(outcome["stdout"], 4000), markup=False, highlight=False)
        if outcome["stderr"]:
            console.print(truncate_text(outcome["stderr"], 2000), style="red", markup=False, highlight=False)
        console.print(f"[dim]exit {outcome['exit_code']} in {format_duration(outcome['duration_ms'])}[/dim]")
        if outcome.get("failure_message"):
            console.print(f"[red]{outcome['failure_message']}[/red]")
        if res.get("backup"):
            b = res["backup"]
            console.print(f"[green]Backup {b['id']}[/green] of {b['source_path']} ({format_bytes(b['size_bytes'])})")
    for key in ("details", "matches", "security_updates"):
        for item in payload.get(key) or []:
            console.print(f" - {item}")


def cmd_backups(config: SysguardConfig) -> int:
    records = BackupLedger(config.ledger_path).load()
    if not records:
        console.print("[dim]No backups recorded.[/dim]")
        return 0
    table = Table(title="Backups")
    for col in ("id", "created", "kind", "source", "size"):
        table.add_column(col)
    for r in records:
        table.add_row(str(r.id), r.created_at.isoformat(timespec="seconds"), r.kind.value, r.source_path, format_bytes(r.size_bytes))
    console.print(table)
    return 0


def cmd_verify(config: SysguardConfig, backup_id: str) -> int:
    record = BackupLedger(config.ledger_path).find(backup_id)
    if record is None:
        console.print(f"[red]No backup matching {backup_id}[/red]")
        return 1
    if BackupStore(config.backup_root).verify(record):
        console.print(f"[green]Backup {record.id} verified[/green] ({record.checksum})")
        return 0
    console.print(f"[red]Backup {record.id} failed verification[/red]")
    return 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config()
    configure_logging("DEBUG" if args.debug else config.log_level)

    if args.command == "backups":
        return cmd_backups(config)
    if args.command == "verify":
        return cmd_verify(config, args.backup_id)
    if args.command == "classify":
        argv_ = strip_separator(args.argv)
        if not argv_:
            console.print("[red]classify: no command given[/red]")
            return 2
        cmd = CommandDescriptor.build(argv_, working_dir=args.cwd, requires_root=args.root)
        verdict = classify(cmd)
        if args.json:
            console.print(RichJSON(json.dumps(verdict.to_dict())))
        else:
            render_verdict(cmd, verdict)
        return 0

    orchestrator = CommandOrchestrator(
        config,
        executor=DryRunExecutor() if args.dry_run else None,
        ledger=BackupLedger(config.ledger_path),
    )
    registry = ToolRegistry(orchestrator)

    if args.command == "tools":
        console.print(RichJSON(json.dumps(registry.tool_defs())))
        return 0

    try:
        request = tool_request(args)
        if request is None:
            console.print(f"[red]Unknown command: {args.command}[/red]")
            return 2
        name, params = request["tool"], request["params"]

        plan = registry.plan(name, params)
        verdicts = [classify(cmd) for cmd in plan]
        if plan:
            console.rule("[bold cyan]Plan[/bold cyan]")
            for cmd, verdict in zip(plan, verdicts):
                render_verdict(cmd, verdict)
        if any(v.confirmation_required for v in verdicts) and not args.yes:
            if not confirm(verdicts):
                console.print("Skipped.")
                return 1

        payload = registry.execute_tool(name, params)
    except ToolError as exc:
        console.print(f"[red]{exc}[/red]")
        return 2

    if args.json or name == "system_info":
        console.print(RichJSON(json.dumps(payload, default=str)))
    else:
        render_result(payload)
    return 0 if payload.get("success", True) else 1


if __name__ == "__main__":
    sys.exit(main())
