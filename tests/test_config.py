import json
from pathlib import Path

from config import DEFAULT_CONFIG, load_config


def test_defaults_written_on_first_read(tmp_path: Path):
    path = tmp_path / ".sysguard" / "config.json"
    config = load_config(path, env={})
    assert json.loads(path.read_text()) == DEFAULT_CONFIG
    assert config.backup_root == Path(".sysguard/backups")
    assert config.executor == "local"
    assert config.timeout_ms == 30000
    assert config.high_risk_dry_run is False


def test_file_values_and_env_overrides(tmp_path: Path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"backup_root": "/var/backups/sg", "timeout_ms": 5000, "unknown": 1}))
    config = load_config(
        path,
        env={"SYSGUARD_EXECUTOR": "dry-run", "SYSGUARD_HIGH_RISK_DRY_RUN": "yes", "SYSGUARD_LOG_LEVEL": "debug"},
    )
    assert config.backup_root == Path("/var/backups/sg")
    assert config.timeout_ms == 5000
    assert config.executor == "dry-run"
    assert config.high_risk_dry_run is True
    assert config.log_level == "DEBUG"


def test_malformed_config_falls_back_to_defaults(tmp_path: Path):
    path = tmp_path / "config.json"
    path.write_text("{ nope")
    config = load_config(path, env={"SYSGUARD_TIMEOUT_MS": "soon"})
    assert config.executor == "local"
    assert config.timeout_ms == 30000
