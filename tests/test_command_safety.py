import shlex

import pytest

from command_safety import (
    RULES,
    classify,
    dry_run_required,
    extract_paths,
    is_highly_destructive,
    is_system_path,
    rollback_hint_for,
)
from models import CommandDescriptor, RiskLevel


def cmd(executable, *args, **kwargs):
    return CommandDescriptor(executable=executable, arguments=args, **kwargs)


def parse(line):
    return cmd(*shlex.split(line))


def test_safe_command_detection():
    verdict = classify(cmd("echo", "hello"))
    assert verdict.level is RiskLevel.SAFE
    assert verdict.reasons == ()
    assert verdict.confirmation_required is False
    assert verdict.backup_required is False
    assert verdict.rollback_hint is None


def test_empty_arguments_do_not_crash():
    verdict = classify(cmd("uptime"))
    assert verdict.level is RiskLevel.SAFE
    assert verdict.affected_paths == ()


def test_rm_rf_root_is_destructive():
    verdict = classify(cmd("rm", "-rf", "/"))
    assert verdict.level is RiskLevel.DESTRUCTIVE
    assert verdict.backup_required is True
    assert verdict.confirmation_required is True
    assert "Potentially destructive command: rm" in verdict.reasons
    assert "Highly destructive operation detected" in verdict.reasons
    assert verdict.rollback_hint == "Restore files from backup"
    assert verdict.affected_paths == ("/",)


def test_apt_install_is_low_risk():
    verdict = classify(cmd("apt", "install", "curl"))
    assert verdict.level is RiskLevel.LOW
    assert verdict.confirmation_required is False
    assert verdict.backup_required is False
    assert verdict.affected_paths == ()
    assert verdict.reasons == ("Package management operation",)


def test_chmod_system_file_is_high_risk():
    verdict = classify(cmd("chmod", "777", "/etc/passwd"))
    assert verdict.level is RiskLevel.HIGH
    assert verdict.backup_required is True
    assert verdict.affected_paths == ("/etc/passwd",)
    assert verdict.reasons == (
        "Potentially destructive command: chmod",
        "Modifying system path: /etc/passwd",
    )
    assert verdict.rollback_hint == "Manual intervention may be required for rollback"


def test_declared_root_raises_to_medium():
    verdict = classify(cmd("apt", "install", "curl", requires_root=True))
    assert verdict.level is RiskLevel.MEDIUM
    assert verdict.confirmation_required is True
    assert verdict.reasons == ("Requires root privileges", "Package management operation")


def test_package_manager_backup_hint():
    verdict = classify(cmd("apt", "install", "/etc/custom.deb"))
    assert verdict.backup_required is True
    assert verdict.rollback_hint == "Use package manager to reverse operation"


def test_executable_is_matched_by_basename():
    verdict = classify(cmd("/usr/bin/pkill", "-TERM", "nginx"))
    assert verdict.level is RiskLevel.MEDIUM
    assert verdict.reasons == ("Potentially destructive command: pkill",)


def test_system_path_reason_lists_every_hit_once():
    verdict = classify(cmd("cp", "/etc/hosts", "/usr/local/hosts", "./copy"))
    assert verdict.level is RiskLevel.HIGH
    assert verdict.reasons == ("Modifying system path: /etc/hosts, /usr/local/hosts",)
    assert len(verdict.affected_paths) == 3


def test_non_system_paths_are_still_recorded(tmp_path):
    verdict = classify(cmd("rm", "./notes.txt", working_dir=str(tmp_path)))
    assert verdict.level is RiskLevel.MEDIUM
    assert verdict.backup_required is False
    assert verdict.affected_paths == (str(tmp_path / "notes.txt"),)


@pytest.mark.parametrize(
    "line",
    [
        "rm -rf /",
        "rm -r -f /",
        "rm -rf --no-preserve-root /",
        "rm --recursive /*",
        "rm -rf //",
        "rm -rf /.",
        "rm -rf /./",
        "rm -rf /tmp/..",
        "rm -rf /etc/../",
        "rm -Rf /./*",
        "sudo rm -rf /",
        "sudo -u root rm -rf /",
        "dd if=/dev/zero of=/dev/sda bs=1M",
        "mkfs.ext4 /dev/sdb1",
        "mke2fs /dev/sdb1",
        "fdisk /dev/sda",
        "shutdown -h now",
        "/sbin/reboot",
        "systemctl reboot",
        "init 0",
    ],
)
def test_highly_destructive_signatures(line):
    assert is_highly_destructive(parse(line))


@pytest.mark.parametrize(
    "line",
    [
        "rm -rf /tmp/build",
        "rm -f /",
        "dd if=disk.img of=backup.img",
        "ls /dev",
        "echo format",
        "apt install reboot-notifier",
        "grep halt notes.txt",
        "apt install mkfs-tools",
        "systemctl status reboot.target",
        "echo rm -rf /",
    ],
)
def test_ordinary_commands_are_not_highly_destructive(line):
    assert not is_highly_destructive(parse(line))


@pytest.mark.parametrize("target", ["//", "/.", "/./", "/tmp/..", "/etc/../"])
def test_root_delete_in_non_literal_form_is_destructive(target):
    verdict = classify(cmd("rm", "-rf", target))
    assert verdict.level is RiskLevel.DESTRUCTIVE
    assert verdict.backup_required is True
    assert verdict.affected_paths == ("/",)


def test_power_word_in_package_name_stays_low():
    verdict = classify(cmd("apt", "install", "reboot-notifier"))
    assert verdict.level is RiskLevel.LOW
    assert verdict.confirmation_required is False


def test_mkfs_variant_is_destructive_executable():
    verdict = classify(cmd("mkfs.ext4", "/dev/sdb1"))
    assert verdict.level is RiskLevel.DESTRUCTIVE
    assert verdict.reasons[0] == "Potentially destructive command: mkfs.ext4"


def test_extract_paths_canonicalizes_and_deduplicates(tmp_path):
    paths = extract_paths(["-v", "/etc/../etc/hosts", "/etc/hosts", "../x", "name", "//usr//bin"], str(tmp_path))
    assert paths == ("/etc/hosts", str(tmp_path.parent / "x"), "/usr/bin")


def test_is_system_path_matches_whole_components():
    assert is_system_path("/etc")
    assert is_system_path("/etc/ssh/sshd_config")
    assert not is_system_path("/etcetera/file")
    assert not is_system_path("/home/user")
    assert not is_system_path("/")


def test_rollback_hint_families():
    assert rollback_hint_for("rmdir") == "Restore files from backup"
    assert rollback_hint_for("dnf") == "Use package manager to reverse operation"
    assert rollback_hint_for("chown") == "Manual intervention may be required for rollback"


def test_classification_is_deterministic():
    descriptor = cmd("chown", "-R", "root", "/usr/share/doc", requires_root=True)
    assert classify(descriptor) == classify(descriptor)


def test_rule_order_does_not_change_level():
    descriptor = cmd("rm", "-rf", "/", requires_root=True)
    forward = classify(descriptor)
    backward = classify(descriptor, rules=list(reversed(RULES)))
    assert forward.level == backward.level
    assert forward.backup_required == backward.backup_required
    assert set(forward.reasons) == set(backward.reasons)


@pytest.mark.parametrize(
    "descriptor",
    [
        cmd("echo"),
        cmd("apt", "install", "vim"),
        cmd("kill", "-9", "1"),
        cmd("chmod", "600", "/root/.ssh/id_rsa"),
        cmd("rm", "-rf", "/"),
        cmd("ls", requires_root=True),
    ],
)
def test_confirmation_tracks_level(descriptor):
    verdict = classify(descriptor)
    assert verdict.confirmation_required == (verdict.level >= RiskLevel.MEDIUM)


def test_each_rule_only_raises_level():
    descriptor = cmd("rm", "-rf", "/", requires_root=True)
    level = RiskLevel.SAFE
    for i in range(1, len(RULES) + 1):
        verdict = classify(descriptor, rules=RULES[:i])
        assert verdict.level >= level
        level = verdict.level
    assert level is RiskLevel.DESTRUCTIVE


def test_dry_run_enforced_for_risky_commands():
    risky = classify(cmd("rm", "file.txt"))
    safe = classify(cmd("echo", "hi"))
    assert dry_run_required(risky, enabled=True) is True
    assert dry_run_required(safe, enabled=True) is False
    assert dry_run_required(risky, enabled=False) is False
