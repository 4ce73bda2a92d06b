import logging

import pytest

from laptop_installer.errors import PreflightError
from laptop_installer.lib import preflight


def test_missing_commands_reported_together(monkeypatch):
    monkeypatch.setattr(preflight.shutil, "which", lambda name: None if name in {"pacstrap", "sgdisk"} else f"/usr/bin/{name}")
    with pytest.raises(PreflightError, match="sgdisk, pacstrap"):
        preflight.require_commands(["sgdisk", "cryptsetup", "pacstrap"])


def test_block_device_check(tmp_path):
    regular = tmp_path / "disk.img"
    regular.write_bytes(b"")
    with pytest.raises(PreflightError, match="not present"):
        preflight.require_block_device(str(regular))
    with pytest.raises(PreflightError):
        preflight.require_block_device(str(tmp_path / "missing"))


def test_network_check_only_warns(recorder, monkeypatch, caplog):
    recorder.respond(["ping"], returncode=2)
    monkeypatch.setattr(preflight, "run_cmd", recorder)

    with caplog.at_level(logging.WARNING):
        assert preflight.check_network() is False
    assert "archlinux.org unreachable" in caplog.text


def test_network_check_survives_missing_ping(monkeypatch):
    def boom(*args, **kwargs):
        raise OSError("ping not installed")

    monkeypatch.setattr(preflight, "run_cmd", boom)
    assert preflight.check_network() is False
