# system_detect.py
from __future__ import annotations

import getpass
import os
import platform
import shutil
import subprocess
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

Argv = Tuple[str, ...]

OS_RELEASE = Path("/etc/os-release")


@dataclass(frozen=True)
class PackageManager:
    name: str
    install: Argv = ()
    remove: Argv = ()
    refresh: Argv = ()
    upgrade: Argv = ()
    search: Argv = ()
    list_installed: Argv = ()
    security_upgrade: Optional[Argv] = None

    @property
    def known(self) -> bool:
        return self.name != "unknown"


UNKNOWN_PACKAGE_MANAGER = PackageManager(name="unknown")

# Probed in order; the first one found on PATH wins.
PACKAGE_MANAGERS: List[PackageManager] = [
    PackageManager(
        name="apt",
        install=("apt", "install"),
        remove=("apt", "remove"),
        refresh=("apt", "update"),
        upgrade=("apt", "upgrade"),
        search=("apt", "search"),
        list_installed=("apt", "list", "--installed"),
        security_upgrade=("apt-get", "upgrade", "-s"),
    ),
    PackageManager(
        name="yum",
        install=("yum", "install"),
        remove=("yum", "remove"),
        refresh=("yum", "makecache"),
        upgrade=("yum", "update"),
        search=("yum", "search"),
        list_installed=("yum", "list", "installed"),
        security_upgrade=("yum", "update", "--security"),
    ),
    PackageManager(
        name="dnf",
        install=("dnf", "install"),
        remove=("dnf", "remove"),
        refresh=("dnf", "makecache"),
        upgrade=("dnf", "upgrade"),
        search=("dnf", "search"),
        list_installed=("dnf", "list", "installed"),
        security_upgrade=("dnf", "upgrade", "--security"),
    ),
    PackageManager(
        name="pacman",
        install=("pacman", "-S"),
        remove=("pacman", "-R"),
        refresh=("pacman", "-Sy"),
        upgrade=("pacman", "-Syu"),
        search=("pacman", "-Ss"),
        list_installed=("pacman", "-Q"),
    ),
    PackageManager(
        name="zypper",
        install=("zypper", "install"),
        remove=("zypper", "remove"),
        refresh=("zypper", "refresh"),
        upgrade=("zypper", "update"),
        search=("zypper", "search"),
        list_installed=("zypper", "search", "--installed-only"),
        security_upgrade=("zypper", "patch", "--category", "security"),
    ),
    PackageManager(
        name="apk",
        install=("apk", "add"),
        remove=("apk", "del"),
        refresh=("apk", "update"),
        upgrade=("apk", "upgrade"),
        search=("apk", "search"),
        list_installed=("apk", "info"),
    ),
    PackageManager(
        name="brew",
        install=("brew", "install"),
        remove=("brew", "uninstall"),
        refresh=("brew", "update"),
        upgrade=("brew", "upgrade"),
        search=("brew", "search"),
        list_installed=("brew", "list"),
    ),
]


@dataclass(frozen=True)
class SystemInfo:
    os: str
    distro: str
    kernel: str
    arch: str
    package_manager: PackageManager
    shell: str
    user: str
    is_root: bool

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["package_manager"] = self.package_manager.name
        return data


@dataclass
class SystemDetector:
    """
    Detects host facts once per instance. Pass one around explicitly rather
    than sharing a module-level instance.
    """

    which: Callable[[str], Optional[str]] = shutil.which
    os_release: Path = OS_RELEASE
    _cached: Optional[SystemInfo] = field(default=None, init=False, repr=False)

    def get_system_info(self) -> SystemInfo:
        if self._cached is None:
            self._cached = SystemInfo(
                os=platform.system().lower(),
                distro=self.detect_distribution(),
                kernel=platform.release(),
                arch=platform.machine(),
                package_manager=self.detect_package_manager(),
                shell=os.environ.get("SHELL", "/bin/sh"),
                user=_current_user(),
                is_root=hasattr(os, "geteuid") and os.geteuid() == 0,
            )
        return self._cached

    def detect_distribution(self) -> str:
        try:
            for line in self.os_release.read_text().splitlines():
                if line.startswith("PRETTY_NAME="):
                    return line.split("=", 1)[1].strip().strip('"')
        except OSError:
            pass

        if self.which("lsb_release"):
            try:
                proc = subprocess.run(["lsb_release", "-d"], capture_output=True, text=True, timeout=5)
                parts = proc.stdout.split("\t", 1)
                if proc.returncode == 0 and len(parts) == 2 and parts[1].strip():
                    return parts[1].strip()
            except (OSError, subprocess.TimeoutExpired):
                pass

        if platform.system() == "Darwin":
            return f"macOS {platform.mac_ver()[0]}".strip()
        return "Unknown Linux Distribution"

    def detect_package_manager(self) -> PackageManager:
        for pm in PACKAGE_MANAGERS:
            if self.which(pm.name):
                return pm
        return UNKNOWN_PACKAGE_MANAGER

    def is_command_available(self, command: str) -> bool:
        return self.which(command) is not None

    def get_system_resources(self) -> Dict[str, Any]:
        memory = {"total": 0, "free": 0, "used": 0}
        try:
            page = os.sysconf("SC_PAGE_SIZE")
            total = page * os.sysconf("SC_PHYS_PAGES")
            free = page * os.sysconf("SC_AVPHYS_PAGES")
            memory = {"total": total, "free": free, "used": total - free}
        except (AttributeError, ValueError, OSError):
            pass

        try:
            load = list(os.getloadavg())
        except (AttributeError, OSError):
            load = []

        disk = {"total": 0, "free": 0, "used": 0}
        try:
            usage = shutil.disk_usage("/")
            disk = {"total": usage.total, "free": usage.free, "used": usage.used}
        except OSError:
            pass

        return {
            "memory": memory,
            "disk": disk,
            "cpu": {"count": os.cpu_count() or 0, "load": load},
        }


def _current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "unknown"
