"""fstab generation and clean-up.

genfstab output is parsed into entries, filtered and rendered back. The
filters are idempotent: postprocess_fstab(postprocess_fstab(x)) equals
postprocess_fstab(x).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from pathlib import Path
from typing import List, Union

from .command import run_cmd

logger = logging.getLogger(__name__)

LIVE_MEDIUM_MARKERS = ("/run/archiso", "archiso/boot")
_SUBVOLID_RE = re.compile(r"^subvolid=\d+$")

TMPFS_ENTRY_TEXT = "tmpfs /tmp tmpfs defaults,noatime,mode=1777 0 0"


@dataclass(frozen=True)
class FstabEntry:
    spec: str
    mountpoint: str
    fstype: str
    options: str = "defaults"
    dump: int = 0
    passno: int = 0

    @property
    def option_list(self) -> List[str]:
        return [o for o in self.options.split(",") if o]

    @property
    def dedup_key(self) -> str:
        # Swap entries have no real mountpoint; key them by device instead.
        if self.mountpoint in {"none", "swap"} or self.fstype == "swap":
            return f"swap:{self.spec}"
        return self.mountpoint


Line = Union[FstabEntry, str]


def parse_entry(line: str) -> FstabEntry:
    fields = line.split()
    if len(fields) < 3:
        raise ValueError(f"Malformed fstab line: {line!r}")
    options = fields[3] if len(fields) > 3 else "defaults"
    dump = int(fields[4]) if len(fields) > 4 else 0
    passno = int(fields[5]) if len(fields) > 5 else 0
    return FstabEntry(fields[0], fields[1], fields[2], options, dump, passno)


def parse_fstab(text: str) -> List[Line]:
    """Split into FstabEntry objects and verbatim comment/blank lines."""

    lines: List[Line] = []
    for raw in text.splitlines():
        stripped = raw.strip()
        if not stripped or stripped.startswith("#"):
            lines.append(raw.rstrip())
        else:
            lines.append(parse_entry(stripped))
    return lines


def render_entry(e: FstabEntry) -> str:
    return "\t".join([e.spec, e.mountpoint, e.fstype, e.options, str(e.dump), str(e.passno)])


def render_fstab(lines: List[Line]) -> str:
    out = [render_entry(x) if isinstance(x, FstabEntry) else x for x in lines]
    # Collapse trailing blank lines.
    while out and not out[-1]:
        out.pop()
    return "\n".join(out) + "\n"


def is_live_artifact(e: FstabEntry) -> bool:
    if any(m in e.spec or m in e.mountpoint for m in LIVE_MEDIUM_MARKERS):
        return True
    return e.spec.startswith("/dev/loop")


def normalize_options(e: FstabEntry) -> FstabEntry:
    opts = []
    for o in e.option_list:
        if _SUBVOLID_RE.match(o):
            continue
        if o == "relatime":
            o = "noatime"
        if o not in opts:
            opts.append(o)
    return replace(e, options=",".join(opts) or "defaults")


def postprocess_fstab(text: str) -> str:
    """Apply the clean-up filters in order.

    a) drop live-medium and loop-device entries
    b) drop subvolid= options
    c) relatime -> noatime
    d) keep the first entry per mountpoint
    e) append a tmpfs /tmp entry if none exists
    """

    out: List[Line] = []
    seen = set()
    for line in parse_fstab(text):
        if not isinstance(line, FstabEntry):
            out.append(line)
            continue
        if is_live_artifact(line):
            logger.info("fstab: dropping live-environment entry %s", line.spec)
            continue
        entry = normalize_options(line)
        if entry.dedup_key in seen:
            logger.info("fstab: dropping duplicate entry for %s", entry.mountpoint)
            continue
        seen.add(entry.dedup_key)
        out.append(entry)

    if "/tmp" not in seen:
        out.append(parse_entry(TMPFS_ENTRY_TEXT))

    return render_fstab(out)


def generate_fstab(target_root: str, *, dry_run: bool = False) -> str:
    r = run_cmd(["genfstab", "-U", target_root], dry_run=dry_run)
    return r.stdout


def write_fstab(target_root: str, *, dry_run: bool = False) -> str:
    """Generate, filter and write TARGET/etc/fstab; returns the written text."""

    contents = postprocess_fstab(generate_fstab(target_root, dry_run=dry_run))
    fstab_path = Path(target_root) / "etc/fstab"
    if dry_run:
        logger.info("Would write %s", fstab_path)
    else:
        fstab_path.parent.mkdir(parents=True, exist_ok=True)
        fstab_path.write_text(contents, encoding="utf-8")
    logger.info("fstab contents (post-filter):\n%s", contents)
    return contents
