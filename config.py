# config.py
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from dotenv import load_dotenv

CONFIG_PATH = Path(".sysguard/config.json")

DEFAULT_CONFIG: Dict[str, Any] = {
    "backup_root": ".sysguard/backups",
    "ledger_path": ".sysguard/backups.jsonl",
    "executor": "local",
    "timeout_ms": 30000,
    "log_level": "INFO",
    "high_risk_dry_run": False,
}

ENV_OVERRIDES = {
    "SYSGUARD_BACKUP_ROOT": "backup_root",
    "SYSGUARD_LEDGER": "ledger_path",
    "SYSGUARD_EXECUTOR": "executor",
    "SYSGUARD_TIMEOUT_MS": "timeout_ms",
    "SYSGUARD_LOG_LEVEL": "log_level",
    "SYSGUARD_HIGH_RISK_DRY_RUN": "high_risk_dry_run",
}


@dataclass(frozen=True)
class SysguardConfig:
    backup_root: Path = Path(DEFAULT_CONFIG["backup_root"])
    ledger_path: Path = Path(DEFAULT_CONFIG["ledger_path"])
    executor: str = DEFAULT_CONFIG["executor"]
    timeout_ms: int = DEFAULT_CONFIG["timeout_ms"]
    log_level: str = DEFAULT_CONFIG["log_level"]
    high_risk_dry_run: bool = DEFAULT_CONFIG["high_risk_dry_run"]


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _read_conf(path: Path) -> Dict[str, Any]:
    if path.exists():
        try:
            data = json.loads(path.read_text())
            if isinstance(data, dict):
                return data
        except (OSError, json.JSONDecodeError):
            pass
        return {}
    # default conf
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(DEFAULT_CONFIG, indent=2))
    except OSError:
        pass
    return {}


def load_config(path: Optional[Path] = None, env: Optional[Mapping[str, str]] = None) -> SysguardConfig:
    if env is None:
        load_dotenv()
        env = os.environ

    merged: Dict[str, Any] = dict(DEFAULT_CONFIG)
    merged.update({k: v for k, v in _read_conf(path or CONFIG_PATH).items() if k in DEFAULT_CONFIG})
    for var, key in ENV_OVERRIDES.items():
        if env.get(var):
            merged[key] = env[var]

    try:
        timeout_ms = int(merged["timeout_ms"])
    except (TypeError, ValueError):
        timeout_ms = DEFAULT_CONFIG["timeout_ms"]

    return SysguardConfig(
        backup_root=Path(merged["backup_root"]),
        ledger_path=Path(merged["ledger_path"]),
        executor=str(merged["executor"]),
        timeout_ms=timeout_ms,
        log_level=str(merged["log_level"]).upper(),
        high_risk_dry_run=_as_bool(merged["high_risk_dry_run"]),
    )


def configure_logging(level: str = "INFO") -> None:
    from rich.logging import RichHandler

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )
