"""End-to-end pipeline tests against the faked tool layer."""
import json

import pytest

from cloudimg_builder import main as main_mod
from cloudimg_builder.errors import AlreadyExists, ToolError
from cloudimg_builder.lib.files import APT_PROXY_CONF

EXPECTED_SEQUENCE = [
    "sgdisk",
    "sgdisk",
    "losetup --find",
    "zpool create",
    "zfs create",
    "zfs create",
    "zfs create",
    "zpool set",
    "mkfs.vfat",
    # export-if-present before the explicit re-import
    "zpool list",
    "zpool export",
    "zpool list",
    "zpool import",
    "zfs mount",
    "zfs mount",
    "mount /dev/loop7p1",
    "debootstrap",
    "cp",
    "cp",
    "mount -t",
    "mount -t",
    "mount -B",
    "mount -t",
    "chroot dpkg-reconfigure locales",
    "chroot update-locale LANG=en_US.UTF-8",
    "chroot apt-get update",
    "chroot apt-get upgrade",
    "chroot apt-get console-setup",
    "chroot dpkg-reconfigure tzdata",
    "chroot dpkg-reconfigure keyboard-configuration",
    "chroot dpkg-reconfigure console-setup",
    "chroot apt-get zfsutils-linux",
    "chroot systemctl zfs.target",
    "chroot systemctl zfs-import-cache",
    "chroot systemctl zfs-mount",
    "chroot systemctl zfs-import.target",
    "chroot update-initramfs all",
    # cleanup tail
    "umount -n",
    "zpool list",
    "zpool export",
    "zpool list",
    "losetup -d",
]


class TestFullPipeline:
    def test_runs_every_step_in_order(self, fake_tools, seeded_target):
        result = main_mod.run(cfg=seeded_target)

        assert fake_tools.labels() == EXPECTED_SEQUENCE
        assert result.ran_steps == [s.step_id for s in main_mod.build_steps()]
        assert result.loop_device == "/dev/loop7"
        assert fake_tools.pools == set()
        assert fake_tools.mounts == []

    def test_writes_target_configuration(self, fake_tools, seeded_target):
        main_mod.run(cfg=seeded_target)

        root = seeded_target.mountpoint_root
        assert (root / "etc/hostname").read_text() == "mycloudimg\n"
        assert (root / "etc/hosts").read_text().endswith("127.0.1.1\tmycloudimg\n")
        assert (root / "etc/timezone").read_text() == "Europe/Berlin\n"
        assert 'XKBLAYOUT="de"' in (root / "etc/default/keyboard").read_text()
        assert "deb http://archive.ubuntu.com/ubuntu/ jammy-security" in (root / "etc/apt/sources.list").read_text()

        locale_gen = (root / "etc/locale.gen").read_text()
        assert "\nen_US.UTF-8 UTF-8\n" in locale_gen
        assert "\nde_DE.UTF-8 UTF-8\n" in locale_gen
        assert "#fr_FR.UTF-8 UTF-8" in locale_gen

    def test_proxy_does_not_persist(self, fake_tools, seeded_target):
        main_mod.run(cfg=seeded_target)

        assert not (seeded_target.mountpoint_root / APT_PROXY_CONF).exists()

    def test_bootloader_installed_from_cache(self, fake_tools, seeded_target):
        main_mod.run(cfg=seeded_target)

        installed = seeded_target.mountpoint_root / "boot/efi/EFI/BOOT/BOOTX64.EFI"
        assert installed.read_bytes() == b"MZ-efi-payload"

    def test_bootstrap_command(self, fake_tools, seeded_target):
        main_mod.run(cfg=seeded_target)

        debootstrap = next(c for c in fake_tools.calls if c[0] == "debootstrap")
        assert debootstrap == [
            "debootstrap",
            f"--cache-dir={seeded_target.bootstrap.cache_dir}",
            "--include=tzdata,locales",
            "jammy",
            str(seeded_target.mountpoint_root),
            "http://archive.ubuntu.com/ubuntu/",
        ]
        assert seeded_target.bootstrap.cache_dir.is_dir()

    def test_stop_after_still_cleans_up(self, fake_tools, seeded_target):
        result = main_mod.run(cfg=seeded_target, stop_after="50_mount_filesystems")

        assert result.ran_steps[-1] == "50_mount_filesystems"
        labels = fake_tools.labels()
        assert "debootstrap" not in labels
        assert labels[-5:] == ["umount -n", "zpool list", "zpool export", "zpool list", "losetup -d"]


class TestFailures:
    def test_dataset_failure_aborts_and_releases(self, fake_tools, build_cfg):
        fake_tools.fail("zfs", "create", stderr="cannot create")

        with pytest.raises(ToolError):
            main_mod.run(cfg=build_cfg)

        labels = fake_tools.labels()
        assert "debootstrap" not in labels
        assert "mkfs.vfat" not in labels
        # Created pool exported, then the loop device detached.
        assert labels[-4:] == ["zpool list", "zpool export", "zpool list", "losetup -d"]

    def test_pool_create_failure_does_not_export(self, fake_tools, build_cfg):
        fake_tools.fail("zpool", "create", stderr="cannot create 'croot': pool already exists")

        with pytest.raises(AlreadyExists):
            main_mod.run(cfg=build_cfg)

        labels = fake_tools.labels()
        assert "zpool export" not in labels
        assert labels[-1] == "losetup -d"

    def test_chroot_failure_unwinds_everything(self, fake_tools, seeded_target):
        fake_tools.fail("chroot", str(seeded_target.mountpoint_root), "apt-get", "update")

        with pytest.raises(ToolError) as exc:
            main_mod.run(cfg=seeded_target)

        assert exc.value.returncode == 1
        labels = fake_tools.labels()
        assert "chroot update-initramfs all" not in labels
        assert labels[-5:] == ["umount -n", "zpool list", "zpool export", "zpool list", "losetup -d"]
        # Proxy removed even though apt failed.
        assert not (seeded_target.mountpoint_root / APT_PROXY_CONF).exists()

    def test_state_record_captures_failing_step(self, fake_tools, build_cfg, tmp_path):
        fake_tools.fail("zfs", "create")
        state_path = tmp_path / "state.json"

        with pytest.raises(ToolError):
            main_mod.run(cfg=build_cfg, state_path=str(state_path))

        state = json.loads(state_path.read_text())
        assert state["execution"]["completed_steps"] == [
            "10_create_image",
            "20_partition_image",
            "30_attach_loop",
        ]
        assert state["execution"]["errors"][0]["step"] == "40_provision_pool"
        assert state["execution"]["errors"][0]["type"] == "ToolError"
        assert state["execution"]["loop_device"] == "/dev/loop7"
