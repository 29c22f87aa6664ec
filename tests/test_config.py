"""Tests for build config loading."""
from pathlib import Path

import pytest

from cloudimg_builder.build_config import load_build_config, with_overrides
from cloudimg_builder.errors import ConfigError


def test_defaults_follow_working_dir(tmp_path):
    cfg = load_build_config(None, base_dir=str(tmp_path))

    assert cfg.image.path == tmp_path / "ubuntu-cloudimg-zfs.raw"
    assert cfg.image.size_bytes == 32212254720
    assert cfg.mountpoint_root == tmp_path / "tmp_root"
    assert cfg.pool.name == "croot"
    assert cfg.pool.os_dataset == "croot/ROOT/ubuntu"
    assert cfg.bootstrap.release == "jammy"
    assert cfg.bootstrap.include == ("tzdata", "locales")
    assert cfg.bootloader.cache_path == tmp_path / "BOOTX64.EFI"
    assert cfg.locales == ["en_US", "de_DE"]
    assert cfg.proxy.enabled is True


def test_yaml_values(tmp_path):
    path = tmp_path / "build.yaml"
    path.write_text(
        "image:\n"
        "  name: test.raw\n"
        "  size_bytes: 2147483648\n"
        "pool:\n"
        "  name: tank\n"
        "  os_id: debian\n"
        "bootstrap:\n"
        "  release: noble\n"
        "locales: en_GB fr_FR\n"
        "proxy:\n"
        "  enabled: false\n"
        "bootloader:\n"
        "  sha256: ABCDEF\n",
        encoding="utf-8",
    )

    cfg = load_build_config(str(path), base_dir=str(tmp_path))

    assert cfg.image.path == tmp_path / "test.raw"
    assert cfg.image.size_bytes == 2147483648
    assert cfg.pool.home_dataset == "tank/home"
    assert cfg.pool.os_dataset == "tank/ROOT/debian"
    assert cfg.bootstrap.release == "noble"
    assert cfg.locales == ["en_GB", "fr_FR"]
    assert cfg.proxy.enabled is False
    assert cfg.bootloader.sha256 == "abcdef"


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        load_build_config(str(tmp_path / "absent.yaml"))


def test_not_yaml(tmp_path):
    p = tmp_path / "build.json"
    p.write_text("{}", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_build_config(str(p))


def test_not_a_mapping(tmp_path):
    p = tmp_path / "build.yaml"
    p.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(ConfigError) as exc:
        load_build_config(str(p))
    assert exc.value.exit_code == 2


def test_overrides(tmp_path):
    cfg = load_build_config(None, base_dir=str(tmp_path))

    out = with_overrides(cfg, {"pool.name": "tank", "hostname": "img", "proxy.enabled": False, "image.name": None})

    assert out.pool.name == "tank"
    assert out.hostname == "img"
    assert out.proxy.enabled is False
    assert out.image.filename == "ubuntu-cloudimg-zfs.raw"
    # Original untouched.
    assert cfg.pool.name == "croot"
    assert cfg.raw == {}


def test_bootstrap_cache_next_to_image(tmp_path):
    cfg = with_overrides(load_build_config(None, base_dir=str(tmp_path)), {"image.dir": str(tmp_path / "out")})

    assert cfg.bootstrap.cache_dir == Path(tmp_path / "out" / "debcache")


def test_relative_mountpoint_is_made_absolute(tmp_path):
    (tmp_path / "real").mkdir()
    (tmp_path / "link").symlink_to(tmp_path / "real", target_is_directory=True)

    relative = with_overrides(load_build_config(None, base_dir=str(tmp_path)), {"mountpoint": "mnt"})
    linked = with_overrides(load_build_config(None, base_dir=str(tmp_path)), {"mountpoint": str(tmp_path / "link")})

    assert relative.mountpoint_root == tmp_path.resolve() / "mnt"
    assert linked.mountpoint_root == tmp_path.resolve() / "real"
