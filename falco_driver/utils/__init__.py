from __future__ import annotations

import os
import shutil
import subprocess
import tarfile
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import IO

from ..context import Context
from ..errors import ArchiveError, CancelledError, ExternalToolError, UnsafeArchiveError


def file_exists(path: str | Path) -> bool:
    return Path(path).exists()


def replace_line_in_file(path: str | Path, search: str, replacement: str, count: int = -1) -> int:
    """Replace every line containing `search` with `replacement`.

    Args:
        path: File to edit in place
        search: Substring identifying the lines to replace
        replacement: Replacement line, without trailing newline
        count: Maximum number of replacements, -1 for all of them

    Returns:
        Number of replaced lines
    """
    path = Path(path)
    lines = path.read_text().splitlines()
    replaced = 0
    for idx, line in enumerate(lines):
        if count != -1 and replaced >= count:
            break
        if search in line:
            lines[idx] = replacement
            replaced += 1

    path.write_text("\n".join(lines) + "\n")
    return replaced


def _strip_path(name: str, strip_components: int) -> str | None:
    parts = [p for p in name.split("/") if p not in ("", ".")]
    if name.startswith("/") or ".." in parts:
        raise UnsafeArchiveError(f"illegal path in archive: {name}")
    parts = parts[strip_components:]
    if not parts:
        return None
    return os.path.join(*parts)


def _ensure_within(root: str, target: str, name: str) -> None:
    if os.path.commonpath([root, os.path.realpath(target)]) != root:
        raise UnsafeArchiveError(f"archive entry escapes destination: {name}")


def extract_tar_gz(src: IO[bytes], dest: str | Path, strip_components: int = 0) -> list[str]:
    """Extract a gzipped tarball read from `src` into `dest`.

    The first `strip_components` path elements of every entry are dropped.
    Absolute paths, `..` elements and links resolving outside of `dest` are
    rejected with UnsafeArchiveError. Device nodes and fifos are skipped.

    Raises:
        ArchiveError: If `src` is not a valid gzipped tarball

    Returns:
        The extracted paths, in archive order
    """
    root = os.path.realpath(dest)
    extracted: list[str] = []

    try:
        _extract_members(src, root, strip_components, extracted)
    except (tarfile.TarError, EOFError) as e:
        raise ArchiveError(f"cannot extract archive: {e}") from e
    return extracted


def _extract_members(src: IO[bytes], root: str, strip_components: int, extracted: list[str]) -> None:
    with tarfile.open(fileobj=src, mode="r|gz") as tar:
        for member in tar:
            rel = _strip_path(member.name, strip_components)
            if rel is None:
                continue
            target = os.path.join(root, rel)
            _ensure_within(root, target, member.name)

            if member.isdir():
                os.makedirs(target, mode=0o750, exist_ok=True)
            elif member.isreg():
                os.makedirs(os.path.dirname(target), mode=0o750, exist_ok=True)
                fileobj = tar.extractfile(member)
                if fileobj is None:
                    continue
                with fileobj, open(target, "wb") as out:
                    shutil.copyfileobj(fileobj, out)
                os.chmod(target, member.mode & 0o777)
            elif member.issym():
                if os.path.isabs(member.linkname):
                    raise UnsafeArchiveError(f"absolute symlink in archive: {member.name} -> {member.linkname}")
                _ensure_within(root, os.path.join(os.path.dirname(target), member.linkname), member.name)
                os.makedirs(os.path.dirname(target), mode=0o750, exist_ok=True)
                os.symlink(member.linkname, target)
            elif member.islnk():
                link_rel = _strip_path(member.linkname, strip_components)
                if link_rel is None:
                    raise UnsafeArchiveError(f"invalid hardlink in archive: {member.name} -> {member.linkname}")
                link_target = os.path.join(root, link_rel)
                _ensure_within(root, link_target, member.name)
                os.makedirs(os.path.dirname(target), mode=0o750, exist_ok=True)
                os.link(link_target, target)
            else:
                continue
            extracted.append(target)


def run_command(
    ctx: Context,
    cmd: Sequence[str],
    cwd: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    poll_interval: float = 0.1,
) -> str:
    """Run `cmd` to completion and return its combined output.

    The process is killed as soon as `ctx` is cancelled.

    Raises:
        ExternalToolError: The command could not be started or exited non-zero
        CancelledError: The context was cancelled while the command was running
    """
    ctx.check()
    full_env = {**os.environ, **env} if env else None
    try:
        # Ruff S603: commands are built from fixed argument lists
        proc = subprocess.Popen(  # noqa: S603
            list(cmd),
            cwd=cwd,
            env=full_env,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
        )
    except OSError as e:
        raise ExternalToolError(cmd, 127, str(e)) from e

    with proc:
        while True:
            try:
                output, _ = proc.communicate(timeout=poll_interval)
                break
            except subprocess.TimeoutExpired:
                if ctx.cancelled:
                    proc.kill()
                    proc.communicate()
                    raise CancelledError(f"{' '.join(cmd)} cancelled") from None

    if proc.returncode != 0:
        raise ExternalToolError(cmd, proc.returncode, output or "")
    return output or ""
