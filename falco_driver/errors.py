"""
Exceptions raised while discovering distros and fetching or building drivers.
"""

from __future__ import annotations

from collections.abc import Sequence


class DriverError(Exception):
    """Base class for all driver pipeline errors."""


class DistroUndeterminedError(DriverError):
    """The host distro could not be identified; the generic strategy is used."""

    def __init__(self, message: str = "failed to determine distro") -> None:
        super().__init__(message)


class TransportError(DriverError):
    def __init__(self, message: str, url: str) -> None:
        super().__init__(f"{message}: {url}")
        self.url = url


class ArtifactNotFoundError(DriverError):
    """No repository served the requested driver."""

    def __init__(self, path: str) -> None:
        super().__init__(f"unable to find a prebuilt driver for {path}")
        self.path = path


class KernelConfigMissingError(DriverError):
    pass


class ArchiveError(DriverError):
    """An archive could not be read or extracted."""


class UnsafeArchiveError(ArchiveError):
    """An archive entry would be written outside of the destination."""


class ExternalToolError(DriverError):
    """An external command exited with a non-zero status."""

    def __init__(self, cmd: Sequence[str], returncode: int, output: str = "") -> None:
        self.cmd = list(cmd)
        self.returncode = returncode
        self.output = output
        super().__init__(f"{' '.join(self.cmd)} exited with abnormal exit code [{returncode}]: {output[-500:]}")


class CancelledError(DriverError):
    pass


class OSReleaseError(DriverError):
    """The os-release file is malformed."""
