"""Renderers for the config files written into the target.

All functions here are pure: value objects in, file contents out.
"""

from __future__ import annotations

from ..build_config import KeyboardSpec, ProxySpec

POCKET_SUFFIXES = ("", "-updates", "-security", "-backports")


def render_hostname(hostname: str) -> str:
    return f"{hostname}\n"


def render_hosts_entry(hostname: str) -> str:
    return f"127.0.1.1\t{hostname}\n"


def render_sources_list(repo_url: str, codename: str, components: str = "main restricted universe multiverse") -> str:
    """One enabled deb line per pocket, each followed by its commented deb-src."""

    blocks = []
    for suffix in POCKET_SUFFIXES:
        suite = f"{codename}{suffix}"
        blocks.append(f"deb {repo_url} {suite} {components}\n# deb-src {repo_url} {suite} {components}\n")
    blocks.append(f"deb {repo_url} {codename} partner\n# deb-src {repo_url} {codename} partner\n")
    return "\n".join(blocks)


def render_keyboard(spec: KeyboardSpec) -> str:
    return (
        "# KEYBOARD CONFIGURATION FILE\n"
        "\n"
        "# Consult the keyboard(5) manual page.\n"
        "\n"
        f'XKBMODEL="{spec.model}"\n'
        f'XKBLAYOUT="{spec.layout}"\n'
        f'XKBVARIANT="{spec.variant}"\n'
        f'XKBOPTIONS="{spec.options}"\n'
        "\n"
        f'BACKSPACE="{spec.backspace}"\n'
    )


def render_timezone(timezone: str) -> str:
    return f"{timezone}\n"


def render_apt_proxy(spec: ProxySpec) -> str:
    return f'Acquire::http {{ Proxy "http://{spec.host}:{spec.port}"; }};\n'
