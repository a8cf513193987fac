import pytest

from planner import (
    plan_cleanup,
    plan_execute,
    plan_install,
    plan_processes,
    plan_remove,
    plan_service,
    plan_update,
)
from system_detect import PACKAGE_MANAGERS, UNKNOWN_PACKAGE_MANAGER

APT = next(pm for pm in PACKAGE_MANAGERS if pm.name == "apt")
PACMAN = next(pm for pm in PACKAGE_MANAGERS if pm.name == "pacman")
DNF = next(pm for pm in PACKAGE_MANAGERS if pm.name == "dnf")


def argv(step):
    return [step.executable, *step.arguments]


def test_plan_install_with_refresh():
    plan = plan_install(APT, ["curl", "git"], update_first=True)
    assert [argv(s) for s in plan] == [["apt", "update"], ["apt", "install", "curl", "git"]]
    assert all(s.requires_root for s in plan)
    assert plan[1].description == "Install packages: curl, git"


def test_plan_install_rejects_bad_package_names():
    with pytest.raises(ValueError):
        plan_install(APT, ["curl; rm -rf /"])
    with pytest.raises(ValueError):
        plan_install(APT, [])


def test_plan_install_requires_known_package_manager():
    with pytest.raises(ValueError):
        plan_install(UNKNOWN_PACKAGE_MANAGER, ["curl"])


def test_plan_remove_purge_only_on_apt():
    assert argv(plan_remove(APT, ["nginx"], purge=True)[0]) == ["apt", "purge", "nginx"]
    assert argv(plan_remove(PACMAN, ["nginx"], purge=True)[0]) == ["pacman", "-R", "nginx"]


def test_plan_service_linux():
    step = plan_service("linux", "nginx", "restart")[0]
    assert argv(step) == ["systemctl", "restart", "nginx"]
    assert step.requires_root is True
    assert plan_service("linux", "nginx", "status")[0].requires_root is False


def test_plan_service_macos():
    assert argv(plan_service("darwin", "com.nginx", "start")[0]) == [
        "launchctl", "load", "-w", "/Library/LaunchDaemons/com.nginx.plist",
    ]
    assert argv(plan_service("darwin", "com.nginx", "status")[0]) == ["launchctl", "list", "com.nginx"]
    with pytest.raises(ValueError):
        plan_service("darwin", "com.nginx", "enable")


def test_plan_service_rejects_unknown_action():
    with pytest.raises(ValueError):
        plan_service("linux", "nginx", "explode")
    with pytest.raises(ValueError):
        plan_service("linux", " ", "start")


def test_plan_processes():
    assert argv(plan_processes("list")[0]) == ["ps", "aux"]
    assert argv(plan_processes("kill", pid=42, signal="KILL")[0]) == ["kill", "-KILL", "42"]
    assert argv(plan_processes("kill", name="nginx")[0]) == ["pkill", "-TERM", "nginx"]
    assert argv(plan_processes("info", pid=7)[0]) == ["ps", "-p", "7", "-o", "pid,ppid,user,time,comm,args"]


def test_plan_processes_validates_arguments():
    with pytest.raises(ValueError):
        plan_processes("kill")
    with pytest.raises(ValueError):
        plan_processes("info", name="nginx")
    with pytest.raises(ValueError):
        plan_processes("suspend")


def test_plan_cleanup_dry_run_never_deletes():
    step = plan_cleanup("/tmp", extensions=["tmp", ".log"], age_in_days=7, size_limit="1MB")[0]
    assert argv(step) == [
        "find", "/tmp", "-maxdepth", "1", "-type", "f",
        "(", "-name", "*.tmp", "-o", "-name", "*.log", ")",
        "-mtime", "+7", "-size", "+1024k", "-print",
    ]
    assert "-delete" not in step.arguments


def test_plan_cleanup_execute_recursive():
    step = plan_cleanup("./cache", recursive=True, dry_run=False)[0]
    assert argv(step) == ["find", "./cache", "-type", "f", "-print", "-delete"]


def test_plan_update_splits_refresh_and_upgrade():
    plan = plan_update(APT, update_package_list=True, upgrade_packages=True)
    assert [argv(s) for s in plan] == [["apt", "update"], ["apt", "upgrade"]]


def test_plan_update_security_only():
    assert argv(plan_update(DNF, False, True, security_only=True)[0]) == ["dnf", "upgrade", "--security"]
    assert argv(plan_update(APT, False, True, security_only=True)[0]) == ["apt-get", "upgrade", "-s"]
    assert argv(plan_update(PACMAN, False, True, security_only=True)[0]) == ["pacman", "-Syu"]


def test_plan_execute():
    step = plan_execute("ls", ["-l"], working_dir="/srv", timeout_ms=5000)[0]
    assert argv(step) == ["ls", "-l"]
    assert step.working_dir == "/srv"
    assert step.timeout_ms == 5000
    assert step.requires_root is False
    assert step.description == "Execute: ls -l"
    with pytest.raises(ValueError):
        plan_execute("  ")
