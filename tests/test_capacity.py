"""Unit tests for oldest-first capacity eviction."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from gestetner.core.errors import StorageAppError
from gestetner.services.capacity import ensure_room, scan_storage, storage_usage


def _write(storage_dir: Path, name: str, size: int, created_at: float) -> Path:
    path = storage_dir / name
    path.write_bytes(b"x" * size)
    os.utime(path, (created_at, created_at))
    return path


@pytest.fixture
def populated(storage_dir: Path) -> Path:
    # oldest -> newest, 100 bytes each
    _write(storage_dir, "aaaa", 100, 1_000.0)
    _write(storage_dir, "bbbb", 100, 2_000.0)
    _write(storage_dir, "cccc", 100, 3_000.0)
    _write(storage_dir, "dddd", 100, 4_000.0)
    return storage_dir


def _names(storage_dir: Path) -> set[str]:
    return {p.name for p in storage_dir.iterdir()}


def test_scan_orders_oldest_first_and_skips_directories(populated: Path) -> None:
    (populated / "subdir").mkdir()

    files = scan_storage(populated)

    assert [f.path.name for f in files] == ["aaaa", "bbbb", "cccc", "dddd"]
    assert storage_usage(populated) == 400


def test_no_eviction_when_there_is_room(populated: Path) -> None:
    evicted = ensure_room(populated, incoming_size=50, capacity=1_000)

    assert evicted == []
    assert _names(populated) == {"aaaa", "bbbb", "cccc", "dddd"}


def test_evicts_oldest_first_until_below_capacity(populated: Path) -> None:
    # 400 + 250 -> 300 + 250 -> 200 + 250 < 500
    evicted = ensure_room(populated, incoming_size=250, capacity=500)

    assert [f.path.name for f in evicted] == ["aaaa", "bbbb"]
    assert _names(populated) == {"cccc", "dddd"}


def test_reaching_capacity_exactly_still_evicts(populated: Path) -> None:
    evicted = ensure_room(populated, incoming_size=100, capacity=500)

    assert [f.path.name for f in evicted] == ["aaaa"]
    assert _names(populated) == {"bbbb", "cccc", "dddd"}


def test_newest_paste_survives_longest(populated: Path) -> None:
    ensure_room(populated, incoming_size=10, capacity=120)

    assert _names(populated) == {"dddd"}


def test_oversized_incoming_evicts_everything(populated: Path) -> None:
    evicted = ensure_room(populated, incoming_size=10_000, capacity=500)

    assert len(evicted) == 4
    assert _names(populated) == set()


def test_empty_directory_is_a_no_op(storage_dir: Path) -> None:
    assert ensure_room(storage_dir, incoming_size=10_000, capacity=1) == []


def test_file_already_removed_counts_as_evicted(populated: Path) -> None:
    real_unlink = Path.unlink

    def racing_unlink(self: Path, missing_ok: bool = False) -> None:
        real_unlink(self)
        if self.name == "aaaa":
            raise FileNotFoundError(self)

    with patch.object(Path, "unlink", racing_unlink):
        evicted = ensure_room(populated, incoming_size=100, capacity=500)

    assert [f.path.name for f in evicted] == ["aaaa"]


def test_delete_failure_is_fatal(populated: Path) -> None:
    with patch.object(Path, "unlink", side_effect=PermissionError(13, "denied")):
        with pytest.raises(StorageAppError) as exc_info:
            ensure_room(populated, incoming_size=100, capacity=500)

    assert exc_info.value.code == "evict_failed"
    assert _names(populated) == {"aaaa", "bbbb", "cccc", "dddd"}


def test_missing_directory_raises_storage_error(tmp_path: Path) -> None:
    with pytest.raises(StorageAppError) as exc_info:
        ensure_room(tmp_path / "missing", incoming_size=1, capacity=10)

    assert exc_info.value.code == "storage_scan_failed"
