"""
Kernel source provisioning.

Some distros do not ship kernel headers on the host. For those, the kernel
sources are downloaded from a single authoritative URL, configured with the
running kernel's config and prepared for out-of-tree module builds.
"""

from __future__ import annotations

import gzip
import shutil
import tempfile
from pathlib import Path
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..context import CancellableReader, Context
from ..errors import KernelConfigMissingError, TransportError
from ..kernelrelease import KernelRelease
from ..output import Printer
from ..shared import DEFAULT_HTTP_TIMEOUT, KERNEL_DIR_ENV, KERNEL_SRC_DOWNLOAD_FOLDER
from ..utils import extract_tar_gz, file_exists, replace_line_in_file, run_command

PROC_CONFIG = "/proc/config.gz"
PREPARE_COMMANDS = (
    ["make", "olddefconfig"],
    ["make", "modules_prepare"],
)


def _host_path(host_root: str, path: str) -> str:
    return f"{host_root.rstrip('/')}{path}"


def kernel_config_candidates(kr: KernelRelease, host_root: str) -> list[str]:
    """Kernel config locations, in lookup order."""
    boot_config = f"/boot/config-{kr}"
    ostree_config = f"/usr/lib/ostree-boot/config-{kr}"
    return [
        PROC_CONFIG,
        boot_config,
        _host_path(host_root, boot_config),
        ostree_config,
        _host_path(host_root, ostree_config),
        f"/lib/modules/{kr}/config",
    ]


def get_kernel_config(printer: Printer, kr: KernelRelease, host_root: str) -> str:
    """Return the first existing kernel config for `kr`.

    Raises:
        KernelConfigMissingError: If none of the candidates exist
    """
    for path in kernel_config_candidates(kr, host_root):
        if file_exists(path):
            printer.info("Found kernel config.", path=path)
            return path
    raise KernelConfigMissingError(f"cannot find kernel config for {kr}")


def install_kernel_config(config_path: str, kernel_dir: Path) -> Path:
    """Copy the kernel config into the source tree, decompressing it if needed."""
    dest = kernel_dir / ".config"
    opener = gzip.open if config_path.endswith(".gz") else open
    with opener(config_path, "rb") as src, open(dest, "wb") as out:
        shutil.copyfileobj(src, out)
    return dest


def customize_kernel_src_build(ctx: Context, printer: Printer, kr: KernelRelease, kernel_dir: Path) -> None:
    """Align the config with the running kernel and prepare the tree for module builds."""
    printer.info("Configuring kernel.", dir=str(kernel_dir))
    if kr.extraversion:
        config = kernel_dir / ".config"
        local_version = f'CONFIG_LOCALVERSION="{kr.full_extraversion}"'
        if not replace_line_in_file(config, "CONFIG_LOCALVERSION=", local_version, 1):
            with open(config, "a") as f:
                f.write(local_version + "\n")

    for cmd in PREPARE_COMMANDS:
        run_command(ctx, cmd, cwd=kernel_dir)


def download_kernel_src(
    ctx: Context,
    printer: Printer,
    kr: KernelRelease,
    url: str,
    host_root: str,
    strip_components: int,
    timeout: float = DEFAULT_HTTP_TIMEOUT,
) -> dict[str, str]:
    """Fetch, configure and prepare the kernel sources found at `url`.

    Args:
        url: Location of a .tar.gz kernel source archive
        host_root: Prefix under which the host filesystem is mounted
        strip_components: Leading path elements to drop while extracting

    Returns:
        Build environment pointing KERNELDIR at the prepared sources
    """
    printer.info("Downloading kernel sources.", url=url)
    work_root = Path(tempfile.gettempdir()) / "kernel"
    work_root.mkdir(mode=0o750, parents=True, exist_ok=True)
    temp_dir = Path(tempfile.mkdtemp(dir=work_root))

    try:
        ctx.check()
        try:
            response = urlopen(Request(url), timeout=timeout)  # noqa: S310
        except HTTPError as e:
            e.close()
            raise TransportError(f"non-200 http GET status code {e.code}", url) from e
        except (URLError, OSError) as e:
            raise TransportError(f"failed to GET kernel sources ({e})", url) from e

        kernel_dir = temp_dir / KERNEL_SRC_DOWNLOAD_FOLDER
        with response:
            if response.status != 200:
                raise TransportError(f"non-200 http GET status code {response.status}", url)

            printer.info("Extracting kernel sources.")
            kernel_dir.mkdir(mode=0o750)
            extract_tar_gz(CancellableReader(ctx, response, url), kernel_dir, strip_components)

        config_path = get_kernel_config(printer, kr, host_root)
        install_kernel_config(config_path, kernel_dir)
        customize_kernel_src_build(ctx, printer, kr, kernel_dir)
    except BaseException:
        shutil.rmtree(temp_dir, ignore_errors=True)
        raise

    return {KERNEL_DIR_ENV: str(kernel_dir)}
