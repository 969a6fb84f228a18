"""Paste persistence: slug assignment, pruning, and the file write.

One file per paste, named by its slug, holding the raw bytes. Nothing else
is written to the storage directory.
"""

from __future__ import annotations

import contextlib
import logging
import threading
from pathlib import Path
from typing import Iterator

from gestetner.core.config import AppSettings
from gestetner.core.errors import StorageAppError
from gestetner.services.capacity import ensure_room
from gestetner.services.slug import generate_slug, is_valid_slug

logger = logging.getLogger(__name__)


class PasteStore:
    """Creates pastes in the storage directory and resolves them by slug.

    With ``serialize_writes`` enabled, "ensure room + write" runs under one
    directory lock, so concurrent creates cannot prune against a stale total.
    Without it the two steps are independent and two concurrent creates may
    briefly overshoot capacity by up to one paste each.
    """

    def __init__(self, app_settings: AppSettings) -> None:
        self._settings = app_settings
        self._storage_dir = Path(app_settings.storage_path)
        self._lock = threading.Lock() if app_settings.serialize_writes else None

    @property
    def storage_dir(self) -> Path:
        return self._storage_dir

    def initialize(self) -> None:
        """Create the storage directory if needed.

        Raises:
            StorageAppError: If the directory cannot be created.
        """
        try:
            self._storage_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageAppError(
                code="storage_init_failed",
                message="Failed to create pastes directory",
                details={"path": str(self._storage_dir), "errno": exc.errno or 0},
            ) from exc
        logger.info(
            "paste_store.initialized",
            extra={
                "storage_path": str(self._storage_dir),
                "capacity": self._settings.capacity,
                "capacity_enabled": self._settings.capacity_enabled,
                "serialize_writes": self._lock is not None,
            },
        )

    def url_for(self, slug: str) -> str:
        return f"{self._settings.base_url}/{slug}"

    @contextlib.contextmanager
    def _write_scope(self) -> Iterator[None]:
        if self._lock is None:
            yield
            return
        with self._lock:
            yield

    def create(self, content: bytes) -> str:
        """Persist ``content`` under a fresh slug and return its public URL.

        Args:
            content: Validated, non-empty paste bytes.

        Returns:
            ``{base_url}/{slug}``.

        Raises:
            StorageAppError: On any filesystem failure. Nothing is retried.
        """
        slug = generate_slug(self._settings.slug_length)
        path = self._storage_dir / slug

        with self._write_scope():
            if self._settings.capacity_enabled:
                ensure_room(self._storage_dir, len(content), self._settings.capacity)
            try:
                path.write_bytes(content)
            except OSError as exc:
                logger.error(
                    "paste.write_failed",
                    extra={"slug": slug, "errno": exc.errno},
                )
                raise StorageAppError(
                    code="write_failed",
                    message="Failed to write paste",
                    details={"path": str(path), "errno": exc.errno or 0},
                ) from exc

        logger.info("paste.created", extra={"slug": slug, "size": len(content)})
        return self.url_for(slug)

    def resolve(self, slug: str) -> Path | None:
        """Path of the stored paste named ``slug``, or None if there is none.

        Only slug-shaped names are looked up, so the lookup can never leave
        the storage directory. Names the filesystem refuses (too long, for
        instance) are simply not found.
        """
        if not is_valid_slug(slug):
            return None
        path = self._storage_dir / slug
        try:
            found = path.is_file()
        except OSError as exc:
            logger.debug("paste.lookup_failed", extra={"errno": exc.errno, "name_length": len(slug)})
            return None
        return path if found else None
