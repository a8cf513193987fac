from pathlib import Path

from system_detect import SystemDetector


def fake_which(available):
    return lambda name: f"/usr/bin/{name}" if name in available else None


def test_detects_first_available_package_manager(tmp_path: Path):
    detector = SystemDetector(which=fake_which({"dnf", "yum"}), os_release=tmp_path / "missing")
    assert detector.detect_package_manager().name == "yum"


def test_unknown_package_manager(tmp_path: Path):
    detector = SystemDetector(which=fake_which(set()), os_release=tmp_path / "missing")
    pm = detector.detect_package_manager()
    assert pm.name == "unknown"
    assert pm.known is False


def test_distribution_from_os_release(tmp_path: Path):
    os_release = tmp_path / "os-release"
    os_release.write_text('NAME="Ubuntu"\nPRETTY_NAME="Ubuntu 22.04.4 LTS"\n', encoding="utf-8")
    detector = SystemDetector(which=fake_which(set()), os_release=os_release)
    assert detector.detect_distribution() == "Ubuntu 22.04.4 LTS"


def test_system_info_is_cached_per_instance(tmp_path: Path):
    detector = SystemDetector(which=fake_which({"apk"}), os_release=tmp_path / "missing")
    info = detector.get_system_info()
    assert info is detector.get_system_info()
    assert info.package_manager.name == "apk"
    assert info.to_dict()["package_manager"] == "apk"


def test_system_resources_shape():
    resources = SystemDetector().get_system_resources()
    assert set(resources) == {"memory", "disk", "cpu"}
    assert resources["cpu"]["count"] >= 0
