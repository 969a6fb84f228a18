"""Capacity management for the paste directory.

The directory listing is the only record of which pastes exist, so every
call rescans it. Eviction is strictly oldest-first by creation time.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from gestetner.core.errors import StorageAppError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredFile:
    """A regular file found in the paste directory."""

    path: Path
    size: int
    created_at: float


def _creation_time(stat: os.stat_result) -> float:
    # st_birthtime where the platform records it; pastes are never modified
    # after being written, so mtime is the creation instant everywhere else.
    return getattr(stat, "st_birthtime", stat.st_mtime)


def scan_storage(storage_dir: Path) -> list[StoredFile]:
    """List regular files in ``storage_dir``, oldest first.

    Entries whose type or metadata cannot be read (for example, removed by a
    concurrent eviction mid-scan) are skipped.

    Raises:
        StorageAppError: If the directory itself cannot be listed.
    """
    files: list[StoredFile] = []
    try:
        with os.scandir(storage_dir) as entries:
            for entry in entries:
                try:
                    if not entry.is_file(follow_symlinks=False):
                        continue
                    stat = entry.stat(follow_symlinks=False)
                except OSError:
                    continue
                files.append(
                    StoredFile(
                        path=Path(entry.path),
                        size=stat.st_size,
                        created_at=_creation_time(stat),
                    )
                )
    except OSError as exc:
        raise StorageAppError(
            code="storage_scan_failed",
            message="Failed to list paste directory",
            details={"path": str(storage_dir), "errno": exc.errno or 0},
        ) from exc

    files.sort(key=lambda f: (f.created_at, f.path.name))
    return files


def storage_usage(storage_dir: Path) -> int:
    """Total bytes occupied by pastes in ``storage_dir``."""
    return sum(f.size for f in scan_storage(storage_dir))


def ensure_room(storage_dir: Path, incoming_size: int, capacity: int) -> list[StoredFile]:
    """Evict the oldest pastes until ``incoming_size`` more bytes fit.

    Files are removed from the front of the oldest-first listing while
    ``total + incoming_size >= capacity``. When ``incoming_size`` alone
    reaches ``capacity`` every file is evicted; the caller still writes the
    new paste, so capacity is a best-effort ceiling.

    Args:
        storage_dir: Paste directory.
        incoming_size: Size in bytes of the paste about to be written.
        capacity: Configured maximum directory footprint in bytes.

    Returns:
        The files that were evicted, oldest first.

    Raises:
        StorageAppError: If the directory cannot be listed or a file cannot
            be deleted. Deletion failures are never retried or ignored.
    """
    files = scan_storage(storage_dir)
    total = sum(f.size for f in files)
    evicted: list[StoredFile] = []

    index = 0
    while total + incoming_size >= capacity and index < len(files):
        victim = files[index]
        index += 1
        try:
            victim.path.unlink()
        except FileNotFoundError:
            # already gone (concurrent eviction); its bytes are freed either way
            logger.debug("capacity.already_evicted", extra={"slug": victim.path.name})
        except OSError as exc:
            logger.error(
                "capacity.evict_failed",
                extra={"slug": victim.path.name, "errno": exc.errno},
            )
            raise StorageAppError(
                code="evict_failed",
                message="Failed to delete paste",
                details={"path": str(victim.path), "errno": exc.errno or 0},
            ) from exc
        else:
            logger.debug(
                "capacity.evicted",
                extra={"slug": victim.path.name, "size": victim.size},
            )
        total -= victim.size
        evicted.append(victim)

    if evicted:
        logger.info(
            "capacity.pruned",
            extra={
                "evicted": len(evicted),
                "freed_bytes": sum(f.size for f in evicted),
                "remaining_bytes": total,
                "incoming_size": incoming_size,
                "capacity": capacity,
            },
        )
    return evicted
