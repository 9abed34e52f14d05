"""
Driver build orchestration.
"""

from __future__ import annotations

from ..context import Context
from ..drivertype import DriverType
from ..kernelrelease import KernelRelease
from ..output import Printer
from .artifact import copy_file_to_local_path, to_filename, to_local_path
from .variants import Distro


def build(
    ctx: Context,
    distro: Distro,
    printer: Printer,
    kr: KernelRelease,
    driver_name: str,
    driver_type: DriverType,
    driver_version: str,
    host_root: str,
) -> str:
    """Build the driver for `kr` and store it in the local cache.

    The distro first customizes the build environment (possibly fetching
    kernel sources), then the driver type backend builds against the
    fixed-up kernel release. The backend output is copied, not moved.

    Returns:
        The canonical cache path of the built driver
    """
    env = distro.customize_build(ctx, printer, driver_type, kr, host_root)
    path = driver_type.build(ctx, printer, distro.fixup_kernel(kr), driver_name, driver_version, env)

    filename = to_filename(distro, kr, driver_name, driver_type)
    destination = to_local_path(driver_version, filename, kr.non_deb_architecture)
    printer.info("Copying built driver to its destination.", src=path, dst=destination)
    copy_file_to_local_path(ctx, destination, path)
    return destination
