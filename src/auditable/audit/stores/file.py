"""File-based audit record store.

One append-only JSONL file per entity type. Appends are a single write
under an exclusive lock; deletions rewrite the file into a temporary copy
and swap it in with ``os.replace``.
"""

import fcntl
import json
import logging
import os
import re
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Hashable, Iterator, List, Optional, Sequence

from auditable.audit.schemas import AuditRecord
from auditable.audit.stores.base import AuditRecordStore
from auditable.common.constants import DataConstants, StorageConstants
from auditable.common.exceptions import StorageError
from auditable.core.types import SortOrder

logger = logging.getLogger(__name__)


class FileAuditRecordStore(AuditRecordStore):
    """File-based audit store in JSONL format.

    Features:
    - One file per entity type, lines in creation order
    - Atomic batch appends with file locking
    - Deletes by atomic rewrite
    """

    backend_name = "file"
    LOCK_SUFFIX = ".lock"

    def __init__(
        self,
        log_dir: str,
        filename_pattern: str = StorageConstants.FILE_PATTERN,
        fsync_on_write: bool = False,
    ):
        """Initialize file audit store.

        Args:
            log_dir: Directory holding the audit files
            filename_pattern: Pattern for file names. {entity_type} is replaced.
            fsync_on_write: Whether to fsync after each write (slower but safer).
        """
        self.log_dir = Path(log_dir)
        self.filename_pattern = filename_pattern
        self.fsync_on_write = fsync_on_write

        # Thread safety
        self._lock = threading.Lock()

        self.log_dir.mkdir(parents=True, exist_ok=True)
        try:
            os.chmod(self.log_dir, 0o700)
        except OSError:
            pass  # May fail on some systems; proceed anyway

    def _path_for(self, entity_type: str) -> Path:
        safe_name = re.sub(r"[^A-Za-z0-9_.-]", "_", entity_type)
        return self.log_dir / self.filename_pattern.replace("{entity_type}", safe_name)

    def _glob_pattern(self) -> str:
        return self.filename_pattern.replace("{entity_type}", "*")

    @contextmanager
    def _file_lock(self, path: Path, exclusive: bool = True) -> Iterator[None]:
        """Cross-process lock on a sidecar file next to ``path``."""
        lock_path = path.with_name(path.name + self.LOCK_SUFFIX)
        fd = os.open(str(lock_path), os.O_RDWR | os.O_CREAT, 0o600)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH)
            try:
                yield
            finally:
                fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)

    def insert_records(self, entity_type: str, records: Sequence[AuditRecord]) -> None:
        """Append the batch with one write under an exclusive lock."""
        if not records:
            return

        path = self._path_for(entity_type)
        payload = "".join(record.to_jsonl() + "\n" for record in records)

        try:
            with self._lock, self._file_lock(path):
                fd = os.open(
                    str(path),
                    os.O_WRONLY | os.O_CREAT | os.O_APPEND,
                    0o600  # Secure file permissions
                )
                try:
                    os.write(fd, payload.encode("utf-8"))
                    if self.fsync_on_write:
                        os.fsync(fd)
                finally:
                    os.close(fd)
        except OSError as e:
            logger.error(f"Failed to append audit records to {path}: {e}")
            raise StorageError(
                f"Failed to write audit records for {entity_type}",
                backend=self.backend_name,
                details={"path": str(path)},
            ) from e

    def _read(self, path: Path, entity_type: Optional[str] = None) -> List[AuditRecord]:
        if not path.exists():
            return []

        records = []
        try:
            with self._file_lock(path, exclusive=False):
                with open(path, "r") as f:
                    lines = f.readlines()
        except OSError as e:
            raise StorageError(
                f"Failed to read audit records from {path}",
                backend=self.backend_name,
            ) from e

        for line in lines:
            line = line.strip()
            if not line:
                continue
            try:
                record = AuditRecord.from_jsonl(line)
            except (json.JSONDecodeError, ValueError) as e:
                logger.warning(f"Skipped malformed audit record in {path}: {e}")
                continue
            if entity_type is None or record.entity_type == entity_type:
                records.append(record)
        return records

    def _for_entity(self, entity_type: str, entity_id: Hashable) -> List[AuditRecord]:
        entity_id = str(entity_id)
        return [
            r for r in self._read(self._path_for(entity_type), entity_type)
            if r.entity_id == entity_id
        ]

    def count_records(self, entity_type: str, entity_id: Hashable) -> int:
        return len(self._for_entity(entity_type, entity_id))

    def oldest_records(self, entity_type: str, entity_id: Hashable, n: int) -> List[str]:
        if n <= 0:
            return []
        return [r.record_id for r in self._for_entity(entity_type, entity_id)[:n]]

    def delete_records(self, record_ids: Sequence[str]) -> None:
        """Remove records from whichever files hold them."""
        doomed = set(record_ids)
        if not doomed:
            return

        with self._lock:
            for path in sorted(self.log_dir.glob(self._glob_pattern())):
                if path.name.endswith(self.LOCK_SUFFIX):
                    continue
                self._rewrite_without(path, doomed)

    def _rewrite_without(self, path: Path, doomed: set) -> None:
        try:
            with self._file_lock(path):
                with open(path, "r") as f:
                    lines = f.readlines()

                kept = [line for line in lines if self._line_id(line) not in doomed]
                if len(kept) == len(lines):
                    return

                fd, tmp_name = tempfile.mkstemp(dir=str(self.log_dir), suffix=".tmp")
                try:
                    with os.fdopen(fd, "w") as tmp:
                        tmp.writelines(kept)
                        tmp.flush()
                        if self.fsync_on_write:
                            os.fsync(tmp.fileno())
                    os.chmod(tmp_name, 0o600)
                    os.replace(tmp_name, path)
                except BaseException:
                    if os.path.exists(tmp_name):
                        os.unlink(tmp_name)
                    raise
        except OSError as e:
            logger.error(f"Failed to delete audit records from {path}: {e}")
            raise StorageError(
                "Failed to delete audit records",
                backend=self.backend_name,
                details={"path": str(path)},
            ) from e

        logger.debug(f"Removed {len(lines) - len(kept)} audit records from {path}")

    @staticmethod
    def _line_id(line: str) -> Optional[str]:
        line = line.strip()
        if not line:
            return None
        try:
            return json.loads(line).get("record_id")
        except (json.JSONDecodeError, AttributeError):
            return None

    def query_history(
        self,
        entity_type: str,
        limit: int = DataConstants.DEFAULT_QUERY_LIMIT,
        order: SortOrder = SortOrder.DESC,
    ) -> List[AuditRecord]:
        results = self._read(self._path_for(entity_type), entity_type)
        results.sort(
            key=lambda r: r.updated_at, reverse=SortOrder(order) == SortOrder.DESC
        )
        return results[:limit]

    def get_records(
        self,
        entity_type: str,
        entity_id: Hashable,
        limit: int = DataConstants.DEFAULT_QUERY_LIMIT,
        order: SortOrder = SortOrder.ASC,
    ) -> List[AuditRecord]:
        results = self._for_entity(entity_type, entity_id)
        if SortOrder(order) == SortOrder.DESC:
            results.reverse()
        return results[:limit]

    def get_log_files(self) -> List[Path]:
        """Get list of all audit files."""
        return [
            p for p in sorted(self.log_dir.glob(self._glob_pattern()))
            if not p.name.endswith(self.LOCK_SUFFIX)
        ]
