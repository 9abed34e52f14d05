"""
Canonical driver artifact naming.

Build and download share these helpers so that a locally built driver and a
downloaded one for the same distro/kernel/driver tuple land in the same
cache slot:

    ~/.falco/<driver version>/<arch>/<name>_<distro>_<kernel release>_<kernel version><ext>
"""

from __future__ import annotations

import contextlib
import os
import tempfile
from pathlib import Path
from typing import IO, TYPE_CHECKING

from ..context import Context
from ..drivertype import DriverType
from ..kernelrelease import KernelRelease

if TYPE_CHECKING:
    from .variants import Distro

CACHE_DIRNAME = ".falco"
_CHUNK_SIZE = 64 * 1024


def to_filename(distro: Distro, kr: KernelRelease, driver_name: str, driver_type: DriverType) -> str:
    fixed = distro.fixup_kernel(kr)
    return f"{driver_name}_{distro}_{fixed}_{fixed.kernel_version}{driver_type.extension()}"


def to_local_path(driver_version: str, filename: str, arch: str) -> str:
    return str(Path.home() / CACHE_DIRNAME / driver_version / arch / filename)


def to_url(repo: str, driver_version: str, filename: str, arch: str) -> str:
    return f"{repo.rstrip('/')}/{driver_version}/{arch}/{filename}"


def copy_data_to_local_path(ctx: Context, destination: str, src: IO[bytes]) -> None:
    """Stream `src` into `destination`, creating parent directories.

    Data is written to a temporary file next to the destination and renamed
    over it once complete, so readers never observe a partial artifact.
    """
    dest_dir = os.path.dirname(destination)
    os.makedirs(dest_dir, mode=0o750, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(dir=dest_dir, prefix=".tmp-")
    try:
        with os.fdopen(fd, "wb") as out:
            while chunk := src.read(_CHUNK_SIZE):
                ctx.check()
                out.write(chunk)
        os.chmod(tmp_path, 0o640)
        os.replace(tmp_path, destination)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp_path)
        raise


def copy_file_to_local_path(ctx: Context, destination: str, source: str) -> None:
    with open(source, "rb") as src:
        copy_data_to_local_path(ctx, destination, src)
