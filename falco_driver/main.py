from __future__ import annotations

import argparse
import signal
import sys
from pathlib import Path

from pydantic import ValidationError

from .config_io import DriverConfig, load_config
from .context import Context
from .distro import discover_distro
from .errors import CancelledError, DriverError
from .installer import DriverInstaller, resolve_kernel_release
from .output import Printer, setup_logging
from .shared import DriverTypeName, InstallMode

_MODES = {
    "download": [InstallMode.DOWNLOAD],
    "build": [InstallMode.BUILD],
    "install": [InstallMode.DOWNLOAD, InstallMode.BUILD],
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="falco-driver", description="Download or build the Falco driver for the running kernel")
    parser.add_argument("--config", type=Path, help="JSON configuration file")
    parser.add_argument("--host-root", help="Prefix under which the host filesystem is mounted")
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        default="info",
        help="Logging verbosity",
    )
    parser.add_argument("--kernel-release", help="Target kernel release instead of the running one")
    parser.add_argument("--kernel-version", help="Target kernel version (uname -v) instead of the running one")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("distro", help="Print the detected distro")
    for name, help_text in (
        ("download", "Download a prebuilt driver"),
        ("build", "Build the driver locally"),
        ("install", "Download a prebuilt driver, building it when none is available"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("--type", choices=[t.value for t in DriverTypeName], help="Driver type, distro preference when omitted")
        cmd.add_argument("--version", help="Driver version")
        cmd.add_argument("--name", help="Driver name")
        cmd.add_argument("--repo", dest="repos", action="append", help="Repository base URL, may be repeated")
    return parser


def _load(ns: argparse.Namespace) -> DriverConfig:
    overrides = {
        "host_root": ns.host_root,
        "kernel_release": ns.kernel_release,
        "kernel_version": ns.kernel_version,
        "type": getattr(ns, "type", None),
        "version": getattr(ns, "version", None),
        "name": getattr(ns, "name", None),
        "repos": getattr(ns, "repos", None),
    }
    return load_config(ns.config, overrides)


def run(argv: list[str], ctx: Context | None = None) -> int:
    ns = build_parser().parse_args(argv)
    setup_logging(ns.log_level)
    printer = Printer()
    ctx = ctx or Context()

    try:
        cfg = _load(ns)
    except (OSError, ValueError, ValidationError) as e:
        printer.error("Invalid configuration.", err=e)
        return 1

    try:
        if ns.command == "distro":
            kr = resolve_kernel_release(cfg)
            discovery = discover_distro(kr, cfg.host_root, printer=printer)
            state = "determined" if discovery.determined else "undetermined"
            print(f"{discovery.distro} ({state})")
            return 0

        result = DriverInstaller(cfg, printer).install(ctx, modes=_MODES[ns.command])
    except CancelledError:
        printer.warn("Driver installation cancelled.")
        return 130
    except (DriverError, OSError, ValueError) as e:
        printer.error("Driver installation failed.", err=e)
        return 1

    printer.info(result.get_summary())
    if result.path:
        print(result.path)
    return 0 if result.success else 1


def main() -> int:
    ctx = Context()
    signal.signal(signal.SIGTERM, lambda signum, frame: ctx.cancel())
    try:
        return run(sys.argv[1:], ctx)
    except KeyboardInterrupt:
        ctx.cancel()
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
