import os
import shlex
import subprocess
import sys
from pathlib import Path
from typing import List

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.history import FileHistory
from prompt_toolkit.styles import Style
from rich.console import Console
from rich.panel import Panel
from rich.text import Text


console = Console()
HISTORY = Path(".sysguard/.repl_history")
ENGINE = os.environ.get("SYSGUARD_ENGINE", "main")

HELP = """\
Commands:
  :help              Show this help
  :dry on|off        Toggle dry-run (classify only, nothing executed)
  :debug on|off      Toggle debug logging
  :yes on|off        Toggle skipping confirmation prompts
  :clear             Clear the screen
  :exit / :quit      Exit REPL

Anything else is passed to the engine, e.g.:
  install curl       service status nginx      process list
  cleanup /tmp --extensions tmp log            update --upgrade
  run -- ls -la /etc classify -- rm -rf /      backups
"""

COMPLETIONS = [
    ":help", ":dry on", ":dry off", ":debug on", ":debug off", ":yes on", ":yes off", ":clear", ":exit", ":quit",
    "info", "install", "remove", "service", "process", "cleanup", "update", "run", "classify", "backups", "verify", "tools",
]


def _bool_toggle(val: str, current: bool) -> bool:
    v = val.strip().lower()
    if v in ("on", "true", "1", "yes", "y"): return True
    if v in ("off", "false", "0", "no", "n"): return False
    return current


def engine_argv(words: List[str], dry: bool, debug: bool, yes: bool) -> List[str]:
    argv = [sys.executable, "-m", ENGINE]
    if dry:
        argv.append("--dry-run")
    if debug:
        argv.append("--debug")
    if yes:
        argv.append("--yes")
    return argv + words


def run_engine(line: str, dry: bool, debug: bool, yes: bool) -> int:
    try:
        words = shlex.split(line)
    except ValueError as exc:
        console.print(f"[red]Could not parse input: {exc}[/red]")
        return 2
    # Inherit the console so the engine can prompt for confirmation
    return subprocess.call(engine_argv(words, dry, debug, yes))


def banner(dry: bool, debug: bool, yes: bool):
    info = Text.from_markup(
        f"[dim]dry-run:[/dim] {'[yellow]on[/yellow]' if dry else '[green]off[/green]'}   "
        f"[dim]debug:[/dim] {'[yellow]on[/yellow]' if debug else '[green]off[/green]'}   "
        f"[dim]auto-confirm:[/dim] {'[red]on[/red]' if yes else '[green]off[/green]'}   "
        f"[dim]engine:[/dim] {ENGINE}\n"
        f"[dim]Type engine commands (e.g. 'install curl'). REPL commands start with ':' (e.g., :help)[/dim]"
    )
    console.print(Panel(info, border_style="cyan", title="SYSGUARD • risk-reviewed system administration"))


def main():
    os.environ.setdefault("PYTHONUTF8", "1")
    HISTORY.parent.mkdir(exist_ok=True, parents=True)
    dry = False
    debug = False
    yes = False

    session = PromptSession(
        message=[("class:prompt", "sysguard> ")],
        history=FileHistory(str(HISTORY)),
        completer=WordCompleter(COMPLETIONS, sentence=True),
        style=Style.from_dict({
            "prompt": "bold cyan",
        }),
    )
    console.clear()
    banner(dry, debug, yes)

    while True:
        try:
            inp = session.prompt()
        except (EOFError, KeyboardInterrupt):
            console.print("[dim]bye[/dim]")
            break

        if not inp.strip():
            continue

        if inp.startswith(":"):
            cmd, *rest = inp[1:].split(" ", 1)
            arg = rest[0] if rest else ""
            cmd = cmd.lower()

            if cmd in ("exit", "quit"):
                break
            elif cmd == "help":
                console.print(Panel(HELP, title="Help", border_style="magenta"))
            elif cmd == "dry":
                dry = _bool_toggle(arg, dry)
                console.print(f"[dim]dry-run ->[/dim] {'[yellow]on[/yellow]' if dry else '[green]off[/green]'}")
            elif cmd == "debug":
                debug = _bool_toggle(arg, debug)
                console.print(f"[dim]debug ->[/dim] {'[yellow]on[/yellow]' if debug else '[green]off[/green]'}")
            elif cmd == "yes":
                yes = _bool_toggle(arg, yes)
                console.print(f"[dim]auto-confirm ->[/dim] {'[red]on[/red]' if yes else '[green]off[/green]'}")
            elif cmd == "clear":
                console.clear()
                banner(dry, debug, yes)
            else:
                console.print(f"[yellow]Unknown command:[/yellow] :{cmd}  (try :help)")
            continue

        code = run_engine(inp, dry=dry, debug=debug, yes=yes)
        if code != 0:
            console.print(f"[red]engine exited with code {code}[/red]")

if __name__ == "__main__":
    main()
