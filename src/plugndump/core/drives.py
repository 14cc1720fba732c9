"""Locate the flight controller's mass-storage volume and copy its logs.

In MSC mode the FC re-enumerates as a USB drive labelled ``BETAFLT``. On
Windows the candidates are drive letters D: through L: and the label comes
from ``GetVolumeInformationW``; elsewhere the candidates are the per-volume
directories under the removable-media mount roots, which are named after
the volume label.
"""

from __future__ import annotations

import asyncio
import getpass
import re
import shutil
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable

from plugndump.exceptions import (
    DriveNotFoundError,
    DriveReadError,
    NoBlackboxFilesError,
    PersistenceError,
)
from plugndump.utils.logging import get_logger

logger = get_logger(__name__)

EXPECTED_LABEL = "BETAFLT"

WINDOWS_DRIVES = tuple(f"{letter}:\\" for letter in "DEFGHIJKL")

_MEDIA_ROOTS = ("/media/{user}", "/run/media/{user}", "/media", "/Volumes", "/mnt")

# Probed in order; the first directory holding any blackbox file wins.
SEARCH_SUBDIRS = ("", "LOGS", "logs", "LOG", "BLACKBOX", "blackbox")

BLACKBOX_FILE = re.compile(r"\.(bbl|bhl)$", re.IGNORECASE)

CopyCallback = Callable[[str, int, int], None]


@dataclass(frozen=True)
class BlackboxScan:
    """Blackbox files found on a located volume."""
    volume: Path
    directory: Path
    files: tuple[Path, ...]


def default_candidates() -> list[Path]:
    """Candidate volume roots for the current platform, in probe order."""
    if sys.platform == "win32":
        return [Path(d) for d in WINDOWS_DRIVES]

    try:
        user = getpass.getuser()
    except (KeyError, OSError):
        user = ""
    seen: set[Path] = set()
    candidates: list[Path] = []
    for pattern in _MEDIA_ROOTS:
        root = Path(pattern.format(user=user))
        try:
            children = sorted(p for p in root.iterdir() if p.is_dir())
        except OSError:
            continue
        for child in children:
            if child not in seen:
                seen.add(child)
                candidates.append(child)
    return candidates


def _windows_volume_label(root: Path) -> str | None:
    import ctypes

    label = ctypes.create_unicode_buffer(261)
    fs_name = ctypes.create_unicode_buffer(261)
    ok = ctypes.windll.kernel32.GetVolumeInformationW(
        ctypes.c_wchar_p(str(root)),
        label,
        len(label),
        None,
        None,
        None,
        fs_name,
        len(fs_name),
    )
    return label.value if ok else None


def read_volume_label(root: Path) -> str | None:
    """Return the volume label of *root*, or None if it cannot be read."""
    if sys.platform == "win32":
        return _windows_volume_label(root)
    return root.name or None


def find_blackbox_files(volume: Path) -> BlackboxScan:
    """Search the known sub-directories of *volume* in order.

    Only the first sub-directory containing matches is used. Missing
    sub-directories are skipped.

    Raises:
        NoBlackboxFilesError: If no searched directory holds a blackbox file.
        OSError: If the volume root itself cannot be listed.
    """
    for subdir in SEARCH_SUBDIRS:
        directory = volume / subdir if subdir else volume
        try:
            matches = sorted(
                p for p in directory.iterdir()
                if BLACKBOX_FILE.search(p.name) and p.is_file()
            )
        except OSError:
            if not subdir:
                raise
            continue
        if matches:
            logger.info("blackbox_files_found", directory=str(directory), count=len(matches))
            return BlackboxScan(volume=volume, directory=directory, files=tuple(matches))
    raise NoBlackboxFilesError(f"{EXPECTED_LABEL} drive found but no blackbox files")


class DriveLocator:
    """Finds the FC volume among candidate drives."""

    def __init__(
        self,
        candidates: Callable[[], Iterable[Path]] | None = None,
        label_reader: Callable[[Path], str | None] | None = None,
        expected_label: str = EXPECTED_LABEL,
    ) -> None:
        self._candidates = candidates or default_candidates
        self._label_reader = label_reader or read_volume_label
        self._expected_label = expected_label.upper()

    @property
    def expected_label(self) -> str:
        return self._expected_label

    def locate(self) -> Path:
        """Return the first accessible candidate whose label matches.

        Raises:
            DriveNotFoundError: If no candidate carries the expected label.
        """
        for candidate in self._candidates():
            try:
                if not candidate.is_dir():
                    continue
                label = self._label_reader(candidate)
            except OSError:
                continue
            if label and self._expected_label in label.upper():
                logger.info("fc_volume_found", volume=str(candidate), label=label)
                return candidate
        raise DriveNotFoundError("No blackbox files found - check MSC mode")

    def scan(self) -> BlackboxScan:
        """Locate the volume and list its blackbox files.

        Raises:
            DriveNotFoundError: No matching volume.
            NoBlackboxFilesError: Volume found without blackbox files.
            DriveReadError: Volume found but unreadable.
        """
        volume = self.locate()
        try:
            return find_blackbox_files(volume)
        except NoBlackboxFilesError:
            raise
        except OSError as exc:
            raise DriveReadError(f"Could not access {self._expected_label} drive contents") from exc


async def copy_blackbox_files(
    scan: BlackboxScan,
    destination: Path,
    on_copied: CopyCallback | None = None,
) -> list[Path]:
    """Copy every scanned file into *destination*; sources are left in place.

    Raises:
        PersistenceError: If a file cannot be copied.
    """
    total = len(scan.files)
    copied: list[Path] = []
    for index, source in enumerate(scan.files, start=1):
        target = destination / source.name
        try:
            await asyncio.to_thread(shutil.copy2, source, target)
        except OSError as exc:
            raise PersistenceError(f"Failed to copy {source.name}: {exc}", step="copy") from exc
        copied.append(target)
        logger.debug("blackbox_file_copied", file=source.name, copied=index, total=total)
        if on_copied is not None:
            on_copied(source.name, index, total)
    return copied
