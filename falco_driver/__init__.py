"""
Falco driver loader.

Detects the host distro and kernel, then downloads or builds the matching
Falco kernel module or eBPF probe into ~/.falco.
"""

from falco_driver.main import main as main

__version__ = "0.1.0"
