"""
Distro discovery.

Resolves the host distro from <host_root>/etc/os-release, falling back to
the registered checkers and finally to the generic strategy.
"""

from __future__ import annotations

import re
import shlex
from dataclasses import dataclass
from pathlib import Path

from ..errors import DistroUndeterminedError, OSReleaseError
from ..kernelrelease import KernelRelease
from ..output import Printer
from .registry import DistroRegistry, get_distro_registry
from .variants import Checker, Distro

UNDETERMINED_ID = "undetermined"
_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass
class DistroDiscovery:
    """Result of distro discovery.

    `distro` is always usable; when `determined` is False it is the generic
    strategy and `error` explains why.
    """

    distro: Distro
    determined: bool = True
    error: DistroUndeterminedError | None = None


def load_os_release(path: str | Path) -> dict[str, str]:
    """Parse an os-release file into a key/value mapping.

    Raises:
        OSError: If the file cannot be read
        OSReleaseError: If a line is not a valid KEY=value assignment
    """
    data: dict[str, str] = {}
    for lineno, raw in enumerate(Path(path).read_text().splitlines(), 1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue

        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not _KEY_RE.match(key):
            raise OSReleaseError(f"{path}:{lineno}: invalid line {raw!r}")
        try:
            data[key] = " ".join(shlex.split(value, comments=True))
        except ValueError as e:
            raise OSReleaseError(f"{path}:{lineno}: {e}") from e
    return data


def _os_release_distro(kr: KernelRelease, host_root: str, registry: DistroRegistry, printer: Printer) -> Distro | None:
    path = f"{host_root.rstrip('/')}/etc/os-release"
    try:
        os_release = load_os_release(path)
    except (OSError, OSReleaseError) as e:
        printer.debug("Cannot use os-release.", path=path, err=e)
        return None

    distro_id = os_release.get("ID", "").lower()
    if not distro_id:
        printer.debug("os-release has no ID.", path=path)
        return None

    # /etc/VERSION identifies minikube better than its os-release does
    minikube = registry.create("minikube")
    if isinstance(minikube, Checker) and minikube.check(host_root):
        distro_id, distro = "minikube", minikube
    else:
        distro = registry.create_or_generic(distro_id)

    distro.init(kr, distro_id, os_release)
    return distro


def discover_distro(
    kr: KernelRelease,
    host_root: str = "/",
    registry: DistroRegistry | None = None,
    printer: Printer | None = None,
) -> DistroDiscovery:
    """Find the distro strategy for the host mounted at `host_root`.

    Args:
        kr: The target kernel release
        host_root: Prefix under which the host filesystem is visible
        registry: Registry to resolve identifiers against; the default one if None

    Returns:
        The discovery result, undetermined when nothing identified the host
    """
    registry = registry or get_distro_registry()
    printer = printer or Printer()

    distro = _os_release_distro(kr, host_root, registry, printer)
    if distro is not None:
        return DistroDiscovery(distro)

    for distro_id, checker in registry.checkers():
        if checker.check(host_root):
            printer.debug("Distro detected by checker.", id=distro_id)
            checker.init(kr, distro_id, None)
            return DistroDiscovery(checker)

    distro = Distro()
    distro.init(kr, UNDETERMINED_ID, None)
    return DistroDiscovery(distro, determined=False, error=DistroUndeterminedError())
