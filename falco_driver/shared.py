from __future__ import annotations

from enum import Enum

# Environment variable handed to the build backends with the kernel source tree.
KERNEL_DIR_ENV = "KERNELDIR"
KERNEL_SRC_DOWNLOAD_FOLDER = "kernel-sources"

DEFAULT_DRIVER_NAME = "falco"
DEFAULT_REPOS = ["https://download.falco.org/driver"]
DEFAULT_HTTP_TIMEOUT = 60.0


class DriverTypeName(Enum):
    """Kind of driver artifact."""

    KMOD = "kmod"
    EBPF = "ebpf"
    MODERN_EBPF = "modern_ebpf"


class InstallMode(Enum):
    """How a driver artifact is obtained."""

    DOWNLOAD = "download"
    BUILD = "build"
