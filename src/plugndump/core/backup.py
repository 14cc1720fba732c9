"""Timestamped backup folders and dump persistence."""

from __future__ import annotations

import asyncio
from datetime import datetime
from pathlib import Path

from plugndump.exceptions import PersistenceError
from plugndump.utils.logging import get_logger

logger = get_logger(__name__)

DUMP_FILENAME = "dump.txt"
FOLDER_TIME_FORMAT = "%m-%d-%y %I-%M-%S %p"


def backup_folder_name(now: datetime | None = None) -> str:
    """Folder name such as ``03-14-25 09-26-53 PM``."""
    return (now or datetime.now()).strftime(FOLDER_TIME_FORMAT)


def create_backup_dir(root: Path, now: datetime | None = None) -> Path:
    """Create a new, previously unused backup folder under *root*.

    A numeric suffix is appended when a folder with the same timestamp
    already exists so earlier runs are never written into.

    Raises:
        PersistenceError: If the folder cannot be created.
    """
    name = backup_folder_name(now)
    candidate = root / name
    suffix = 1
    try:
        root.mkdir(parents=True, exist_ok=True)
        while True:
            try:
                candidate.mkdir()
                break
            except FileExistsError:
                suffix += 1
                candidate = root / f"{name} ({suffix})"
    except OSError as exc:
        raise PersistenceError(f"Failed to create backup folder in {root}: {exc}") from exc
    logger.info("backup_dir_created", path=str(candidate))
    return candidate


def write_dump(folder: Path, text: str) -> Path:
    """Write the CLI dump text into *folder*.

    Raises:
        PersistenceError: If the file cannot be written.
    """
    path = folder / DUMP_FILENAME
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise PersistenceError(f"Error saving dump file: {exc}") from exc
    logger.info("dump_saved", path=str(path), size=len(text))
    return path


async def save_dump(root: Path, text: str, now: datetime | None = None) -> Path:
    """Create a backup folder under *root* and store the dump in it."""
    folder = await asyncio.to_thread(create_backup_dir, root, now)
    return await asyncio.to_thread(write_dump, folder, text)
