import pytest

from laptop_installer.errors import EncryptionError, PlanningError
from laptop_installer.install_config import InstallConfig, InstallSecrets
from laptop_installer.main import build_steps
from laptop_installer.pipeline import run_pipeline
from laptop_installer.steps import step_15_collect_config, step_20_plan_layout, step_40_encryption, step_90_finalize
from laptop_installer.steps.step_15_collect_config import CollectConfigStep
from laptop_installer.steps.step_30_wipe_disk import WipeDiskStep
from laptop_installer.steps.step_40_encryption import EncryptionStep
from laptop_installer.steps.step_90_finalize import FinalizeStep

GIB = 1024**3


def base_state(**cfg):
    config = InstallConfig(**cfg)
    return {
        "config": config.to_dict(),
        "secrets": InstallSecrets(password="abc123", luks_passphrase="disk-pass" if config.encrypted else None),
        "execution": {
            "mounts": {
                "target_root": "/mnt",
                "esp_part": "/dev/nvme0n1p1",
                "root_part": "/dev/nvme0n1p2",
                "swap_part": "/dev/nvme0n1p3",
                "root_device": "/dev/nvme0n1p2",
                "swap_device": "/dev/nvme0n1p3",
            }
        },
    }


def test_step_order():
    ids = [s.step_id for s in build_steps()]
    assert ids == sorted(ids)
    assert ids.index("20_plan_layout") < ids.index("30_wipe_disk") < ids.index("35_partition")


def test_undersized_disk_fails_before_any_destructive_call(monkeypatch):
    monkeypatch.setattr(step_20_plan_layout, "get_disk_size_bytes", lambda disk, dry_run=False: 32 * GIB)
    wiped = []
    monkeypatch.setattr("laptop_installer.steps.step_30_wipe_disk.wipe_disk", lambda disk, dry_run=False: wiped.append(disk))

    state = base_state(swap_gib=16)
    steps = [step_20_plan_layout.PlanLayoutStep(), WipeDiskStep()]
    with pytest.raises(PlanningError):
        run_pipeline(state=state, steps=steps)
    assert wiped == []


def test_encryption_step_maps_devices(recorder, monkeypatch):
    calls = []
    monkeypatch.setattr(step_40_encryption, "luks_format", lambda dev, pp, label, dry_run=False: calls.append(("format", dev, pp)))
    monkeypatch.setattr(
        step_40_encryption,
        "luks_open",
        lambda dev, name, pp, dry_run=False: calls.append(("open", dev, name)) or f"/dev/mapper/{name}",
    )
    monkeypatch.setattr(step_40_encryption, "enable_swap", lambda dev, dry_run=False: calls.append(("swap", dev)))

    state = EncryptionStep().run(base_state(encrypted=True))

    mounts = state["execution"]["mounts"]
    assert mounts["root_device"] == "/dev/mapper/cryptroot"
    assert mounts["swap_device"] == "/dev/mapper/cryptswap"
    assert calls[-1] == ("swap", "/dev/mapper/cryptswap")
    assert ("format", "/dev/nvme0n1p2", "disk-pass") in calls


def test_plain_install_activates_raw_swap(monkeypatch):
    swaps = []
    monkeypatch.setattr(step_40_encryption, "luks_format", lambda *a, **k: pytest.fail("no LUKS on plain installs"))
    monkeypatch.setattr(step_40_encryption, "enable_swap", lambda dev, dry_run=False: swaps.append(dev))

    EncryptionStep().run(base_state(encrypted=False))
    assert swaps == ["/dev/nvme0n1p3"]


def test_encryption_without_passphrase_aborts():
    state = base_state(encrypted=True)
    state["secrets"] = InstallSecrets(password="abc123")
    with pytest.raises(EncryptionError):
        EncryptionStep().run(state)


def test_finalize_is_best_effort(recorder, monkeypatch):
    recorder.respond(["umount"], returncode=32)
    recorder.respond(["cryptsetup", "close"], returncode=4)
    monkeypatch.setattr("laptop_installer.lib.crypto.run_cmd", recorder)
    monkeypatch.setattr("laptop_installer.lib.filesystems.run_cmd", recorder)

    state = FinalizeStep().run(base_state(encrypted=True))

    assert recorder.calls == [
        ["swapoff", "-a"],
        ["umount", "-R", "/mnt"],
        ["cryptsetup", "close", "cryptroot"],
        ["cryptsetup", "close", "cryptswap"],
    ]
    assert state["execution"]["decisions"]["clean_teardown"] is False


def test_finalize_plain_does_not_close_mappings(recorder, monkeypatch):
    monkeypatch.setattr("laptop_installer.lib.crypto.run_cmd", recorder)
    monkeypatch.setattr("laptop_installer.lib.filesystems.run_cmd", recorder)

    step_90_finalize.FinalizeStep().run(base_state(encrypted=False))
    assert not recorder.commands("cryptsetup")


def test_collect_config_pins_layout_once_disk_was_touched(monkeypatch):
    seen = {}

    def fake_collect(defaults, *, layout_locked=False):
        seen["locked"] = layout_locked
        seen["defaults"] = defaults
        return defaults, InstallSecrets(password="abc123")

    monkeypatch.setattr(step_15_collect_config.prompts, "collect_config", fake_collect)
    state = base_state(encrypted=False, swap_gib=16)
    state["execution"]["completed_steps"] = [
        "10_preflight", "15_collect_config", "20_plan_layout", "30_wipe_disk", "35_partition",
        "40_encryption", "50_filesystems", "60_install_base", "65_write_fstab",
    ]

    state = CollectConfigStep().run(state)

    assert seen["locked"] is True
    assert state["config"]["encrypted"] is False
    assert state["config"]["swap_gib"] == 16


def test_collect_config_is_open_before_the_disk_is_touched(monkeypatch):
    seen = {}

    def fake_collect(defaults, *, layout_locked=False):
        seen["locked"] = layout_locked
        return InstallConfig(disk=defaults.disk, encrypted=True), InstallSecrets("abc123", "disk-pass")

    monkeypatch.setattr(step_15_collect_config.prompts, "collect_config", fake_collect)
    state = base_state(encrypted=False)
    state["execution"]["completed_steps"] = ["10_preflight", "15_collect_config", "20_plan_layout"]

    state = CollectConfigStep().run(state)

    assert seen["locked"] is False
    assert state["config"]["encrypted"] is True
