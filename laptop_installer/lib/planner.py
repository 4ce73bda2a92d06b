"""Partition size arithmetic.

All offsets are whole MiB from the start of the disk. The EFI region starts
at 0, root follows immediately and swap takes whatever is left at the end.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from ..errors import PlanningError
from .env import DEFAULTS

logger = logging.getLogger(__name__)

MIB = 1024 * 1024

# sgdisk type codes
TYPE_EFI = "ef00"
TYPE_LINUX = "8300"
TYPE_SWAP = "8200"


@dataclass(frozen=True)
class PartitionRegion:
    name: str
    number: int
    start_mib: int
    size_mib: int
    type_code: str

    @property
    def end_mib(self) -> int:
        return self.start_mib + self.size_mib


@dataclass(frozen=True)
class DiskLayout:
    disk_mib: int
    regions: List[PartitionRegion]

    def region(self, name: str) -> Optional[PartitionRegion]:
        return next((r for r in self.regions if r.name == name), None)

    @property
    def esp(self) -> PartitionRegion:
        return self.regions[0]

    @property
    def root(self) -> PartitionRegion:
        return self.regions[1]

    @property
    def swap(self) -> Optional[PartitionRegion]:
        return self.region("swap")

    def to_dict(self) -> Dict[str, Any]:
        return {"disk_mib": self.disk_mib, "regions": [asdict(r) for r in self.regions]}

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "DiskLayout":
        return cls(
            disk_mib=int(raw["disk_mib"]),
            regions=[PartitionRegion(**r) for r in raw["regions"]],
        )


def plan_layout(
    disk_size_bytes: int,
    swap_mib: int,
    *,
    esp_mib: int = DEFAULTS.esp_size_mib,
    min_root_mib: int = DEFAULTS.min_root_mib,
) -> DiskLayout:
    """Compute EFI/root/swap regions for a disk.

    Raises PlanningError when the root region would be smaller than
    min_root_mib. A swap request of half the disk or more only warns.
    """

    if swap_mib < 0:
        raise PlanningError(f"Swap size must not be negative, got {swap_mib} MiB")

    disk_mib = disk_size_bytes // MIB

    if 2 * swap_mib >= disk_mib:
        logger.warning("Large swap selected (%s MiB >= 50%% of %s MiB disk). Continuing.", swap_mib, disk_mib)

    root_end = disk_mib - swap_mib
    root_size = root_end - esp_mib
    if root_size < min_root_mib:
        raise PlanningError(
            f"Root size ({root_size} MiB) < minimum ({min_root_mib} MiB). Reduce swap size."
        )

    regions = [
        PartitionRegion("efi", 1, 0, esp_mib, TYPE_EFI),
        PartitionRegion("root", 2, esp_mib, root_size, TYPE_LINUX),
    ]
    if swap_mib:
        regions.append(PartitionRegion("swap", 3, root_end, swap_mib, TYPE_SWAP))

    layout = DiskLayout(disk_mib=disk_mib, regions=regions)
    for r in layout.regions:
        logger.info("Layout %-4s [%s, %s) MiB size=%s", r.name, r.start_mib, r.end_mib, r.size_mib)
    return layout
