from .step_10_create_image import CreateImageStep
from .step_20_partition_image import PartitionImageStep
from .step_30_attach_loop import AttachLoopStep
from .step_40_provision_pool import ProvisionPoolStep
from .step_50_mount_filesystems import MountFilesystemsStep
from .step_60_install_bootloader import InstallBootloaderStep
from .step_70_bootstrap_os import BootstrapOSStep
from .step_80_configure_system import ConfigureSystemStep
from .step_90_verify_image import VerifyImageStep

__all__ = [
    "CreateImageStep",
    "PartitionImageStep",
    "AttachLoopStep",
    "ProvisionPoolStep",
    "MountFilesystemsStep",
    "InstallBootloaderStep",
    "BootstrapOSStep",
    "ConfigureSystemStep",
    "VerifyImageStep",
]
