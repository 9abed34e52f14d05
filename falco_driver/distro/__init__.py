"""
Distro specific driver logic.

This package resolves the host distro into a strategy object and drives the
build and download of drivers matching the host kernel.
"""

from .build import build
from .discovery import DistroDiscovery, discover_distro, load_os_release
from .download import download
from .registry import DistroRegistry, get_distro_registry
from .variants import Checker, Distro

__all__ = [
    "Checker",
    "Distro",
    "DistroDiscovery",
    "DistroRegistry",
    "build",
    "discover_distro",
    "download",
    "get_distro_registry",
    "load_os_release",
]
