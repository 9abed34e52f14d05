"""
Kernel release descriptor.

This module provides the immutable KernelRelease model, the parser for
`uname -r` style strings and the Debian/non-Debian architecture mapping
used in artifact paths.
"""

from __future__ import annotations

import os
import platform
import re

from pydantic import BaseModel, ConfigDict, field_validator

_RELEASE_RE = re.compile(
    r"^(?P<fullversion>(?P<version>0|[1-9]\d*)\.(?P<patchlevel>0|[1-9]\d*)(?:[.+](?P<sublevel>0|[1-9]\d*))?)"
    r"(?P<full_extraversion>[-.+](?P<extraversion>.*))?$"
)

# Debian style -> kernel (uname -m) style
_DEB_TO_NON_DEB = {
    "amd64": "x86_64",
    "arm64": "aarch64",
}
_NON_DEB_TO_DEB = {v: k for k, v in _DEB_TO_NON_DEB.items()}


def to_deb_architecture(arch: str) -> str:
    return _NON_DEB_TO_DEB.get(arch, arch)


def to_non_deb_architecture(arch: str) -> str:
    return _DEB_TO_NON_DEB.get(arch, arch)


class KernelRelease(BaseModel):
    """Parsed kernel release, e.g. ``5.15.0-67-generic`` on amd64.

    Instances are frozen: distro fixups produce modified copies.
    """

    model_config = ConfigDict(frozen=True)

    fullversion: str
    version: int
    patchlevel: int
    sublevel: int = 0
    extraversion: str = ""
    full_extraversion: str = ""
    kernel_version: str = "1"
    architecture: str = "amd64"

    @field_validator("architecture")
    @classmethod
    def _normalize_architecture(cls, v: str) -> str:
        if not v:
            raise ValueError("Kernel architecture cannot be empty")
        return to_deb_architecture(v)

    @classmethod
    def parse(cls, release: str, kernel_version: str = "1", architecture: str | None = None) -> KernelRelease:
        """Parse a `uname -r` style string.

        Args:
            release: The kernel release, e.g. "6.1.0-13-amd64"
            kernel_version: The `uname -v` output, or an already normalized value
            architecture: Target architecture; defaults to the running machine

        Raises:
            ValueError: If the release cannot be parsed
        """
        match = _RELEASE_RE.match(release.strip())
        if not match:
            raise ValueError(f"Invalid kernel release: {release!r}")

        return cls(
            fullversion=match.group("fullversion"),
            version=int(match.group("version")),
            patchlevel=int(match.group("patchlevel")),
            sublevel=int(match.group("sublevel") or 0),
            extraversion=match.group("extraversion") or "",
            full_extraversion=match.group("full_extraversion") or "",
            kernel_version=kernel_version,
            architecture=architecture or platform.machine(),
        )

    @classmethod
    def from_host(cls) -> KernelRelease:
        """Describe the running kernel."""
        uname = os.uname()
        return cls.parse(uname.release, kernel_version=uname.version, architecture=uname.machine)

    @property
    def non_deb_architecture(self) -> str:
        return to_non_deb_architecture(self.architecture)

    def supports_modern_bpf(self) -> bool:
        return (self.version, self.patchlevel) >= (5, 8)

    def __str__(self) -> str:
        return f"{self.fullversion}{self.full_extraversion}"
