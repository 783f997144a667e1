"""
Artifact Namer - Default bundle filenames and scratch paths

Pure functions; the clock can be frozen by passing now.
"""
import re
import secrets
from datetime import datetime
from pathlib import Path
from typing import Optional

from config import BUNDLE_EXTENSION, FILENAME_DATE_FORMAT, TEMP_DIR_NAME
from avatars.schemas import Platform

_INVALID_FILENAME_CHARS = re.compile(r"[^a-z0-9\-_]")


def sanitize_scene_name(scene_name: str) -> str:
    """Lowercase a scene name and drop everything outside [a-z0-9-_]"""
    return _INVALID_FILENAME_CHARS.sub("", (scene_name or "").lower())


def generate_default_filename(
    scene_name: str,
    platform: Platform,
    now: Optional[datetime] = None,
    extension: str = BUNDLE_EXTENSION
) -> str:
    """
    Generate a bundle filename

    Args:
        scene_name: Name of the document holding the avatar
        platform: Target platform
        now: Timestamp to use (defaults to the local clock)
        extension: Bundle extension without the dot

    Returns:
        A filename like 2024-05-01-1330-mainscene-windows.noxw
    """
    stamp = (now or datetime.now()).strftime(FILENAME_DATE_FORMAT)
    return f"{stamp}-{sanitize_scene_name(scene_name)}-{Platform(platform).value}.{extension.lstrip('.')}"


def generate_random_hash() -> str:
    """32 lowercase hex characters"""
    return secrets.token_hex(16)


def generate_temp_path(project_root: Path) -> Path:
    """Fresh scratch directory under the project's temp folder"""
    return Path(project_root) / TEMP_DIR_NAME / generate_random_hash()


__all__ = [
    "sanitize_scene_name",
    "generate_default_filename",
    "generate_random_hash",
    "generate_temp_path",
]
