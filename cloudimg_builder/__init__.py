"""Cloud disk image builder (UEFI + ZFS root).

Core design goals:
- Strictly ordered provisioning steps
- Every external tool call logged before it runs
- Loop device, pool import and mounts released on every exit path
- Config files rendered by pure functions
"""

__version__ = "0.1.0"

__all__ = []
