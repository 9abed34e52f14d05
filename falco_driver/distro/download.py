"""
Prebuilt driver download.

Repositories are tried strictly in the configured order and the first one
answering 200 wins.
"""

from __future__ import annotations

from collections.abc import Sequence
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..context import CancellableReader, Context
from ..drivertype import DriverType
from ..errors import ArtifactNotFoundError, TransportError
from ..kernelrelease import KernelRelease
from ..output import Printer
from ..shared import DEFAULT_HTTP_TIMEOUT
from ..utils import file_exists
from .artifact import copy_data_to_local_path, to_filename, to_local_path, to_url
from .variants import Distro


def download(
    ctx: Context,
    distro: Distro,
    printer: Printer,
    kr: KernelRelease,
    driver_name: str,
    driver_type: DriverType,
    driver_version: str,
    repos: Sequence[str],
    timeout: float = DEFAULT_HTTP_TIMEOUT,
) -> str:
    """Download the driver for `kr` from the first repository serving it.

    Nothing is fetched when the driver is already in the local cache.

    Returns:
        The canonical cache path of the driver

    Raises:
        ArtifactNotFoundError: No repository served the driver; its `path`
            is where the driver was expected
    """
    filename = to_filename(distro, kr, driver_name, driver_type)
    arch = kr.non_deb_architecture
    destination = to_local_path(driver_version, filename, arch)
    if file_exists(destination):
        printer.info("Skipping download, driver already present.", path=destination)
        return destination

    for repo in repos:
        ctx.check()
        url = to_url(repo, driver_version, filename, arch)
        printer.info("Trying to download a driver.", url=url)

        try:
            response = urlopen(Request(url), timeout=timeout)  # noqa: S310
        except HTTPError as e:
            e.close()
            printer.warn("Error GETting url.", url=url, status=e.code)
            continue
        except (URLError, OSError, ValueError) as e:
            printer.warn("Error GETting url.", url=url, err=e)
            continue

        with response:
            if response.status != 200:
                printer.warn("Error GETting url.", url=url, status=response.status)
                continue
            try:
                copy_data_to_local_path(ctx, destination, CancellableReader(ctx, response, url))
            except TransportError as e:
                printer.warn("Error reading response body.", url=url, err=e)
                continue
        return destination

    raise ArtifactNotFoundError(destination)
