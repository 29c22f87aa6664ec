from __future__ import annotations

import logging

from ..lib.chroot import chroot_cmd
from ..lib.files import append_file, apt_proxy, write_file
from ..lib.locales import enable_locales
from ..lib.pkg import apt_install, apt_update, apt_upgrade, dpkg_reconfigure
from ..lib.sysconfig import (
    render_hostname,
    render_hosts_entry,
    render_keyboard,
    render_sources_list,
    render_timezone,
)
from ..pipeline import BuildCtx

logger = logging.getLogger(__name__)

BASE_PACKAGES = ["linux-generic", "locales", "keyboard-configuration", "console-setup"]
ZFS_PACKAGES = ["dosfstools", "zfs-initramfs", "zfsutils-linux"]
ZFS_UNITS = ["zfs.target", "zfs-import-cache", "zfs-mount", "zfs-import.target"]


class ConfigureSystemStep:
    step_id = "80_configure_system"

    def run(self, ctx: BuildCtx) -> None:
        cfg = ctx.cfg
        root = ctx.require_mount_root()
        hostname = cfg.hostname

        write_file(root, "/etc/hostname", render_hostname(hostname))

        enable_locales(root, cfg.locales)
        dpkg_reconfigure(root, "locales")
        chroot_cmd(root, ["update-locale", f"LANG={cfg.default_lang}"])

        append_file(root, "/etc/hosts", render_hosts_entry(hostname))
        write_file(
            root,
            "/etc/apt/sources.list",
            render_sources_list(cfg.bootstrap.repo_url, cfg.bootstrap.release, cfg.bootstrap.components),
        )

        with apt_proxy(root, cfg.proxy):
            apt_update(root)
            apt_upgrade(root)
            apt_install(root, BASE_PACKAGES)

            write_file(root, "/etc/timezone", render_timezone(cfg.timezone))
            dpkg_reconfigure(root, "tzdata")
            write_file(root, "/etc/default/keyboard", render_keyboard(cfg.keyboard))
            dpkg_reconfigure(root, "keyboard-configuration")
            dpkg_reconfigure(root, "console-setup")

            apt_install(root, ZFS_PACKAGES)

            # Boot-time import/mount of the pool.
            for unit in ZFS_UNITS:
                chroot_cmd(root, ["systemctl", "enable", unit])

            chroot_cmd(root, ["update-initramfs", "-c", "-k", "all"])

        logger.info("Configured hostname=%s timezone=%s locales=%s", hostname, cfg.timezone, cfg.locales)
