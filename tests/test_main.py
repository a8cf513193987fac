import pytest

import main
from backup_store import BackupStore
from ledger import BackupLedger


@pytest.fixture(autouse=True)
def isolated_workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for var in ("SYSGUARD_EXECUTOR", "SYSGUARD_BACKUP_ROOT", "SYSGUARD_LEDGER", "SYSGUARD_HIGH_RISK_DRY_RUN"):
        monkeypatch.delenv(var, raising=False)
    return tmp_path


def test_tool_request_maps_cleanup_flags():
    args = main.build_parser().parse_args(["cleanup", "/tmp", "--extensions", "tmp", "log", "--age-days", "3"])
    request = main.tool_request(args)
    assert request["tool"] == "cleanup_files"
    assert request["params"]["dry_run"] is True
    assert request["params"]["filters"] == {"extensions": ["tmp", "log"], "age_in_days": 3, "size_limit": None}


def test_classify_command_does_not_execute():
    assert main.main(["--json", "classify", "--", "rm", "-rf", "/"]) == 0


def test_declined_confirmation_skips_run(monkeypatch):
    monkeypatch.setattr("builtins.input", lambda prompt="": "n")
    assert main.main(["--dry-run", "process", "kill", "--name", "nginx"]) == 1


def test_destructive_commands_need_typed_run(monkeypatch):
    answers = []
    monkeypatch.setattr("builtins.input", lambda prompt="": answers.append(prompt) or "y")
    assert main.main(["--dry-run", "run", "--", "rm", "-rf", "/"]) == 1
    assert "Type 'run'" in answers[0]


def test_dry_run_with_yes_completes():
    assert main.main(["--dry-run", "--yes", "run", "--", "rm", "-rf", "/"]) == 0


def test_invalid_tool_params_exit_code():
    assert main.main(["--yes", "install", "bad;name"]) == 2


def test_backups_and_verify(isolated_workdir):
    source = isolated_workdir / "app.conf"
    source.write_text("x=1\n", encoding="utf-8")
    record = BackupStore(".sysguard/backups").snapshot(source)
    BackupLedger(".sysguard/backups.jsonl").append(record)

    assert main.main(["backups"]) == 0
    assert main.main(["verify", str(record.id)]) == 0
    assert main.main(["verify", "0000"]) == 1
