from laptop_installer.lib import fstab
from laptop_installer.lib.fstab import FstabEntry, parse_fstab, postprocess_fstab

GENFSTAB_OUTPUT = """\
# Static information about the filesystems.
# See fstab(5) for details.

# /dev/mapper/cryptroot LABEL=arch_root
UUID=aaaa-root\t/\tbtrfs\trw,relatime,compress=zstd:3,ssd,discard=async,space_cache=v2,subvolid=256,subvol=/@\t0 0

# /dev/mapper/cryptroot LABEL=arch_root
UUID=aaaa-root\t/home\tbtrfs\trw,relatime,compress=zstd:3,ssd,discard=async,space_cache=v2,subvolid=257,subvol=/@home\t0 0

# /dev/nvme0n1p1
UUID=1234-ABCD\t/boot\tvfat\trw,relatime,fmask=0022,dmask=0022\t0 2

/dev/loop0\t/run/archiso/airootfs\tsquashfs\tro,relatime\t0 0
/dev/sdb1\t/run/archiso/bootmnt\tiso9660\tro,relatime\t0 0

# duplicate root picked up from a bind mount
UUID=aaaa-root\t/\tbtrfs\trw,relatime,subvolid=5,subvol=/\t0 0

# /dev/mapper/cryptswap
UUID=bbbb-swap\tnone\tswap\tdefaults\t0 0
"""


def entries(text):
    return [x for x in parse_fstab(text) if isinstance(x, FstabEntry)]


def test_filters_applied():
    out = postprocess_fstab(GENFSTAB_OUTPUT)
    result = entries(out)

    mountpoints = [e.mountpoint for e in result]
    assert mountpoints == ["/", "/home", "/boot", "none", "/tmp"]

    assert "archiso" not in out
    assert "/dev/loop" not in out
    assert "subvolid" not in out
    assert "relatime" not in out

    root = result[0]
    assert root.option_list[0] == "rw"
    assert "noatime" in root.option_list
    assert "subvol=/@" in root.option_list

    assert result[-1] == FstabEntry("tmpfs", "/tmp", "tmpfs", "defaults,noatime,mode=1777", 0, 0)


def test_idempotent():
    once = postprocess_fstab(GENFSTAB_OUTPUT)
    assert postprocess_fstab(once) == once


def test_existing_tmp_entry_kept():
    text = "tmpfs /tmp tmpfs rw,size=2G 0 0\n"
    out = postprocess_fstab(text)
    assert entries(out) == [FstabEntry("tmpfs", "/tmp", "tmpfs", "rw,size=2G", 0, 0)]


def test_relatime_merges_with_existing_noatime():
    out = postprocess_fstab("UUID=x / btrfs noatime,relatime 0 0\n")
    assert entries(out)[0].options == "noatime"


def test_every_line_has_six_fields():
    for line in postprocess_fstab(GENFSTAB_OUTPUT).splitlines():
        if line and not line.startswith("#"):
            assert len(line.split()) == 6


def test_write_fstab(tmp_path, recorder, monkeypatch):
    recorder.respond(["genfstab"], stdout=GENFSTAB_OUTPUT)
    monkeypatch.setattr(fstab, "run_cmd", recorder)

    contents = fstab.write_fstab(str(tmp_path))

    assert recorder.calls == [["genfstab", "-U", str(tmp_path)]]
    assert (tmp_path / "etc/fstab").read_text() == contents
