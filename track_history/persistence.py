"""JSON snapshot persistence for the history store.

Every store mutation schedules a full snapshot write on a single background
worker. Writes are applied in mutation order; a failed write is logged and
otherwise ignored (the in-memory state stays authoritative).
"""

from __future__ import annotations

import json
import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Any, Callable

from track_history.models import DEFAULT_TZ
from track_history.store import HistoryStore, StoreChange

logger = logging.getLogger(__name__)


class SnapshotFile:
    """A single JSON document on disk holding the persisted store state."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> dict[str, Any] | None:
        """Read the snapshot (None if missing, empty or unreadable).

        A corrupted file is kept as ``<name>.broken`` so the next save does
        not destroy it.
        """

        if not self._path.exists():
            return None
        raw = self._path.read_bytes()
        if not raw.strip():
            return None
        try:
            doc = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            backup = self._path.with_suffix(self._path.suffix + ".broken")
            backup.write_bytes(raw)
            logger.warning("快照文件损坏，已备份到 %s，将从空记录开始", backup)
            return None
        if not isinstance(doc, dict):
            logger.warning("快照文件格式不正确（顶层不是对象）：%s", self._path)
            return None
        return doc

    def save(self, doc: dict[str, Any]) -> None:
        """Persist the snapshot to disk (atomic-ish)."""

        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(doc, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(self._path)


class SnapshotWriter:
    """Fire-and-forget writer running on one background thread."""

    def __init__(self, snapshot_file: SnapshotFile) -> None:
        self._file = snapshot_file
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="snapshot-writer")
        self._pending: list[Future[None]] = []
        self.failures = 0

    def schedule(self, doc: dict[str, Any]) -> Future[None]:
        """Queue a write of ``doc``. The dict must not be mutated afterwards."""

        self._pending = [f for f in self._pending if not f.done()]
        fut = self._executor.submit(self._write, doc)
        self._pending.append(fut)
        return fut

    def flush(self) -> None:
        """Block until every scheduled write has finished."""

        wait(list(self._pending))
        self._pending.clear()

    def close(self) -> None:
        self.flush()
        self._executor.shutdown(wait=True)

    def _write(self, doc: dict[str, Any]) -> None:
        try:
            self._file.save(doc)
        except OSError as exc:
            self.failures += 1
            logger.warning("写入快照失败（%s）：%s", self._file.path, exc)


def attach_writer(store: HistoryStore, writer: SnapshotWriter) -> Callable[[], None]:
    """Persist a snapshot after every store mutation. Returns an unsubscribe function."""

    def on_change(change: StoreChange) -> None:
        # snapshot is built here, on the mutating thread
        writer.schedule(store.snapshot())

    return store.subscribe(on_change)


def open_store(path: str | Path, tz_name: str | None = DEFAULT_TZ) -> tuple[HistoryStore, SnapshotWriter]:
    """Load the store from ``path`` and wire up incremental persistence.

    Args:
        path: Snapshot JSON path (created on the first mutation).
        tz_name: IANA timezone used for day keys. None means system local.

    Returns:
        (store, writer). Call ``writer.close()`` before the process exits.
    """

    snapshot_file = SnapshotFile(path)
    store = HistoryStore(tz_name=tz_name)
    doc = snapshot_file.load()
    if doc is not None:
        store.restore(doc)
        logger.info("已加载 %s 天、%s 个位置点：%s", len(store.list_day_keys()), len(store), snapshot_file.path)
    writer = SnapshotWriter(snapshot_file)
    attach_writer(store, writer)
    return store, writer
