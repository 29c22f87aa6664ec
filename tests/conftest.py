"""
Pytest configuration and shared fixtures for cloudimg-builder tests.

The external tool layer is faked at subprocess.run: every argv is recorded,
and losetup/zpool/mount calls update a small in-memory model so polling
helpers (pool list, mount table) see consistent state.
"""

import subprocess
from pathlib import Path
from typing import Dict, List, Tuple

import pytest

from cloudimg_builder.build_config import BuildConfig


class FakeTools:
    def __init__(self, loop_device: str = "/dev/loop7") -> None:
        self.loop_device = loop_device
        self.calls: List[List[str]] = []
        self.pools: set = set()
        self.mounts: List[str] = []
        self.altroot: str = "/"
        self.failures: Dict[Tuple[str, ...], Tuple[int, str]] = {}

    def fail(self, *prefix: str, returncode: int = 1, stderr: str = "boom") -> None:
        self.failures[prefix] = (returncode, stderr)

    def __call__(self, argv, **kwargs):
        argv = list(argv)
        self.calls.append(argv)

        for prefix, (rc, err) in self.failures.items():
            if tuple(argv[: len(prefix)]) == prefix:
                return subprocess.CompletedProcess(argv, rc, "", err)

        stdout = ""
        head = argv[:2]
        if head == ["losetup", "--find"]:
            stdout = self.loop_device + "\n"
        elif head == ["zpool", "list"]:
            stdout = "".join(f"{p}\n" for p in sorted(self.pools))
        elif head == ["zpool", "create"]:
            self.pools.add(argv[-2])
        elif head == ["zpool", "export"]:
            self.pools.discard(argv[2])
        elif head == ["zpool", "import"]:
            self.altroot = argv[argv.index("-R") + 1]
            self.pools.add(argv[-1])
        elif head == ["zfs", "mount"]:
            suffix = "/home" if argv[2].endswith("/home") else ""
            self.mounts.append(self.altroot.rstrip("/") + suffix)
        elif argv[0] == "mount":
            self.mounts.append(argv[-1])
        elif argv[0] == "umount":
            root = argv[-1].rstrip("/")
            self.mounts = [m for m in self.mounts if not (m == root or m.startswith(root + "/"))]
        return subprocess.CompletedProcess(argv, 0, stdout, "")

    def mounted_under(self, root, table=None) -> List[str]:
        prefix = str(root).rstrip("/")
        return [m for m in self.mounts if m == prefix or m.startswith(prefix + "/")]

    def labels(self) -> List[str]:
        return [label(argv) for argv in self.calls]


def label(argv: List[str]) -> str:
    """Short, stable name for a recorded command."""
    if argv[0] == "chroot":
        return f"chroot {argv[2]} {argv[-1]}"
    if argv[0] in {"zpool", "zfs", "losetup", "mount", "umount"}:
        return " ".join(argv[:2])
    return argv[0]


@pytest.fixture
def fake_tools(monkeypatch) -> FakeTools:
    fake = FakeTools()
    monkeypatch.setattr("cloudimg_builder.lib.command.subprocess.run", fake)
    monkeypatch.setattr("cloudimg_builder.lib.mounts.mounted_under", fake.mounted_under)
    monkeypatch.setattr("cloudimg_builder.steps.step_90_verify_image.mounted_under", fake.mounted_under)
    return fake


@pytest.fixture
def build_cfg(tmp_path: Path) -> BuildConfig:
    raw = {
        "image": {"size_bytes": 1024 * 1024 * 1024},
        "mountpoint": str(tmp_path / "tmp_root"),
        "settle": {"timeout": 1, "interval": 0},
    }
    return BuildConfig(raw=raw, base_dir=tmp_path)


@pytest.fixture
def seeded_target(build_cfg: BuildConfig) -> BuildConfig:
    """Pre-seed what debootstrap and a cached bootloader download would leave."""
    etc = build_cfg.mountpoint_root / "etc"
    etc.mkdir(parents=True)
    (etc / "locale.gen").write_text(
        "# This file lists locales\n#en_US.UTF-8 UTF-8\n# de_DE.UTF-8 UTF-8\n#fr_FR.UTF-8 UTF-8\n",
        encoding="utf-8",
    )
    (etc / "hosts").write_text("127.0.0.1\tlocalhost\n", encoding="utf-8")
    build_cfg.bootloader.cache_path.write_bytes(b"MZ-efi-payload")
    return build_cfg
