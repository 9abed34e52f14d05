import io
import tarfile
from http.client import IncompleteRead
from pathlib import Path

import pytest
from falco_driver.context import Context
from falco_driver.kernelrelease import KernelRelease
from falco_driver.output import Printer


class FakeResponse(io.BytesIO):
    """Stand-in for the object returned by urlopen."""

    def __init__(self, body: bytes = b"", status: int = 200) -> None:
        super().__init__(body)
        self.status = status


class TruncatedResponse(FakeResponse):
    """A 200 response whose connection drops after `partial` was received."""

    def __init__(self, partial: bytes = b"abc", expected: int = 100) -> None:
        super().__init__(partial)
        self.expected = expected

    def read(self, size: int = -1) -> bytes:
        data = super().read(size)
        if data:
            return data
        raise IncompleteRead(self.getvalue(), self.expected)


def make_tar_gz(files: dict[str, bytes], extra: list[tarfile.TarInfo] | None = None) -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        for name, data in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o644
            tar.addfile(info, io.BytesIO(data))
        for info in extra or []:
            tar.addfile(info)
    return buf.getvalue()


@pytest.fixture
def ctx() -> Context:
    return Context()


@pytest.fixture
def printer() -> Printer:
    return Printer()


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setenv("HOME", str(home_dir))
    return home_dir


@pytest.fixture
def kr() -> KernelRelease:
    return KernelRelease.parse("5.15.0-67-generic", kernel_version="#74-Ubuntu SMP Wed Feb 22 14:14:39 UTC 2023", architecture="amd64")
