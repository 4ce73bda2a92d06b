from .step_10_preflight import PreflightStep
from .step_15_collect_config import CollectConfigStep
from .step_20_plan_layout import PlanLayoutStep
from .step_30_wipe_disk import WipeDiskStep
from .step_35_partition import PartitionStep
from .step_40_encryption import EncryptionStep
from .step_50_filesystems import FilesystemStep
from .step_60_install_base import InstallBaseStep
from .step_65_write_fstab import WriteFstabStep
from .step_70_configure_target import ConfigureTargetStep
from .step_90_finalize import FinalizeStep

__all__ = [
    "PreflightStep",
    "CollectConfigStep",
    "PlanLayoutStep",
    "WipeDiskStep",
    "PartitionStep",
    "EncryptionStep",
    "FilesystemStep",
    "InstallBaseStep",
    "WriteFstabStep",
    "ConfigureTargetStep",
    "FinalizeStep",
]
