"""Video device node classification."""

import os

DEFAULT_DEVICE_DIR = "/dev"
DEFAULT_PREFIX = "video"


def is_video_device(
    path: str, device_dir: str = DEFAULT_DEVICE_DIR, prefix: str = DEFAULT_PREFIX
) -> bool:
    """Check whether a path names a video device node.

    Both bare names reported by the directory watch (``video0``) and absolute
    paths resolved from descriptors (``/dev/video0``) are accepted. Absolute
    paths outside ``device_dir`` never match.

    Args:
        path: Bare file name or absolute path
        device_dir: Directory holding device nodes
        prefix: Base name prefix of video nodes

    Returns:
        True if the path is a video device node
    """
    if path.startswith("/") and not path.startswith(device_dir.rstrip("/") + "/"):
        return False
    return os.path.basename(path).startswith(prefix)


def list_video_devices(
    device_dir: str = DEFAULT_DEVICE_DIR, prefix: str = DEFAULT_PREFIX
) -> list[str]:
    """List absolute paths of the video nodes currently in ``device_dir``.

    Raises:
        OSError: If the directory cannot be listed
    """
    return sorted(
        os.path.join(device_dir, name)
        for name in os.listdir(device_dir)
        if is_video_device(name, device_dir, prefix)
    )
