from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import ConfigError

MIB = 1024 * 1024

DEFAULT_IMAGE_SIZE = 32212254720
DEFAULT_IMAGE_NAME = "ubuntu-cloudimg-zfs.raw"
DEFAULT_REPO_URL = "http://archive.ubuntu.com/ubuntu/"
DEFAULT_BOOTLOADER_URL = "https://get.zfsbootmenu.org/efi"


@dataclass(frozen=True)
class ImageSpec:
    directory: Path
    filename: str
    size_bytes: int = DEFAULT_IMAGE_SIZE

    @property
    def path(self) -> Path:
        return self.directory / self.filename


@dataclass(frozen=True)
class PartitionLayout:
    """Boot (ESP) partition at a fixed offset, pool partition takes the rest.

    The trailing margin leaves room for the backup GPT header.
    """

    boot_index: int = 1
    boot_typecode: str = "ef00"
    boot_offset_mib: int = 1
    boot_size_mib: int = 512
    pool_index: int = 2
    pool_typecode: str = "bf00"
    tail_margin_mib: int = 10

    @property
    def boot_size_bytes(self) -> int:
        return self.boot_size_mib * MIB

    @property
    def boot_span_bytes(self) -> int:
        return (self.boot_offset_mib + self.boot_size_mib) * MIB

    def pool_size_bytes(self, image_size: int) -> int:
        size = image_size - self.boot_span_bytes - self.tail_margin_mib * MIB
        if size <= 0:
            raise ConfigError(f"Image of {image_size} bytes is too small for the partition layout")
        return size


@dataclass(frozen=True)
class PoolSpec:
    name: str = "croot"
    os_id: str = "ubuntu"
    ashift: int = 12
    compression: str = "lz4"
    acltype: str = "posixacl"
    xattr: str = "sa"
    relatime: str = "on"
    autotrim: str = "on"
    compatibility: str = "openzfs-2.1-linux"

    @property
    def root_container(self) -> str:
        return f"{self.name}/ROOT"

    @property
    def os_dataset(self) -> str:
        return f"{self.name}/ROOT/{self.os_id}"

    @property
    def home_dataset(self) -> str:
        return f"{self.name}/home"


@dataclass(frozen=True)
class BootstrapSpec:
    release: str = "jammy"
    repo_url: str = DEFAULT_REPO_URL
    cache_dir: Optional[Path] = None
    include: tuple = ("tzdata", "locales")
    components: str = "main restricted universe multiverse"


@dataclass(frozen=True)
class ProxySpec:
    enabled: bool = True
    host: str = "127.0.0.1"
    port: int = 3142


@dataclass(frozen=True)
class KeyboardSpec:
    model: str = "pc105"
    layout: str = "de"
    variant: str = "nodeadkeys"
    options: str = ""
    backspace: str = "guess"


@dataclass(frozen=True)
class BootloaderSpec:
    url: str
    cache_path: Path
    sha256: Optional[str] = None
    efi_subdir: str = "EFI/BOOT"
    efi_filename: str = "BOOTX64.EFI"


@dataclass(frozen=True)
class SettleSpec:
    timeout: float = 10.0
    interval: float = 0.5


@dataclass(frozen=True)
class BuildConfig:
    raw: Dict[str, Any]
    base_dir: Path

    def _section(self, name: str) -> Dict[str, Any]:
        sec = self.raw.get(name) or {}
        if not isinstance(sec, dict):
            raise ConfigError(f"config section {name!r} must be a mapping")
        return sec

    @property
    def image(self) -> ImageSpec:
        sec = self._section("image")
        return ImageSpec(
            directory=Path(sec.get("dir") or self.base_dir),
            filename=str(sec.get("name") or DEFAULT_IMAGE_NAME),
            size_bytes=int(sec.get("size_bytes") or DEFAULT_IMAGE_SIZE),
        )

    @property
    def layout(self) -> PartitionLayout:
        sec = self._section("partitions")
        defaults = PartitionLayout()
        return PartitionLayout(
            boot_offset_mib=int(sec.get("boot_offset_mib", defaults.boot_offset_mib)),
            boot_size_mib=int(sec.get("boot_size_mib", defaults.boot_size_mib)),
            tail_margin_mib=int(sec.get("tail_margin_mib", defaults.tail_margin_mib)),
        )

    @property
    def pool(self) -> PoolSpec:
        sec = self._section("pool")
        defaults = PoolSpec()
        return PoolSpec(
            name=str(sec.get("name") or defaults.name),
            os_id=str(sec.get("os_id") or defaults.os_id),
            ashift=int(sec.get("ashift", defaults.ashift)),
            compression=str(sec.get("compression") or defaults.compression),
            compatibility=str(sec.get("compatibility") or defaults.compatibility),
        )

    @property
    def mountpoint_root(self) -> Path:
        # Always canonical: the mount table is matched against it.
        root = Path(self.raw.get("mountpoint") or "tmp_root")
        if not root.is_absolute():
            root = self.base_dir / root
        return root.resolve()

    @property
    def bootstrap(self) -> BootstrapSpec:
        sec = self._section("bootstrap")
        defaults = BootstrapSpec()
        cache_dir = sec.get("cache_dir")
        include = sec.get("include")
        return BootstrapSpec(
            release=str(sec.get("release") or defaults.release),
            repo_url=str(sec.get("repo_url") or defaults.repo_url),
            cache_dir=Path(cache_dir) if cache_dir else self.image.directory / "debcache",
            include=tuple(include) if include else defaults.include,
            components=str(sec.get("components") or defaults.components),
        )

    @property
    def proxy(self) -> ProxySpec:
        sec = self._section("proxy")
        defaults = ProxySpec()
        return ProxySpec(
            enabled=bool(sec.get("enabled", defaults.enabled)),
            host=str(sec.get("host") or defaults.host),
            port=int(sec.get("port") or defaults.port),
        )

    @property
    def keyboard(self) -> KeyboardSpec:
        sec = self._section("keyboard")
        defaults = KeyboardSpec()
        return KeyboardSpec(
            model=str(sec.get("model", defaults.model)),
            layout=str(sec.get("layout", defaults.layout)),
            variant=str(sec.get("variant", defaults.variant)),
            options=str(sec.get("options", defaults.options)),
            backspace=str(sec.get("backspace", defaults.backspace)),
        )

    @property
    def bootloader(self) -> BootloaderSpec:
        sec = self._section("bootloader")
        cache = sec.get("cache_path")
        return BootloaderSpec(
            url=str(sec.get("url") or DEFAULT_BOOTLOADER_URL),
            cache_path=Path(cache) if cache else self.image.directory / "BOOTX64.EFI",
            sha256=(str(sec["sha256"]).lower() if sec.get("sha256") else None),
        )

    @property
    def settle(self) -> SettleSpec:
        sec = self._section("settle")
        defaults = SettleSpec()
        return SettleSpec(
            timeout=float(sec.get("timeout", defaults.timeout)),
            interval=float(sec.get("interval", defaults.interval)),
        )

    @property
    def hostname(self) -> str:
        return str(self.raw.get("hostname") or "mycloudimg").strip()

    @property
    def timezone(self) -> str:
        return str(self.raw.get("timezone") or "Europe/Berlin")

    @property
    def locales(self) -> List[str]:
        value = self.raw.get("locales") or ["en_US", "de_DE"]
        if isinstance(value, str):
            return value.split()
        return [str(v) for v in value]

    @property
    def default_lang(self) -> str:
        return str(self.raw.get("default_lang") or "en_US.UTF-8")


def load_build_config(path: Optional[str], *, base_dir: Optional[str] = None) -> BuildConfig:
    """Load YAML config; no path means all defaults."""

    base = Path(base_dir) if base_dir else Path.cwd()
    if not path:
        return BuildConfig(raw={}, base_dir=base)

    p = Path(path)
    if not p.exists():
        raise ConfigError(f"config file not found: {path}")

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ConfigError("build config must be YAML")

    import yaml

    raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a mapping/object")

    return BuildConfig(raw=raw, base_dir=base)


def with_overrides(cfg: BuildConfig, overrides: Dict[str, Any]) -> BuildConfig:
    """Return a new config with dotted-key overrides (e.g. 'pool.name') applied."""

    raw: Dict[str, Any] = {k: (dict(v) if isinstance(v, dict) else v) for k, v in cfg.raw.items()}
    for key, value in overrides.items():
        if value is None:
            continue
        section, _, leaf = key.partition(".")
        if leaf:
            sec = raw.setdefault(section, {})
            if not isinstance(sec, dict):
                raise ConfigError(f"config section {section!r} must be a mapping")
            sec[leaf] = value
        else:
            raw[section] = value
    return BuildConfig(raw=raw, base_dir=cfg.base_dir)
