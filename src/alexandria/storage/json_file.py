"""JSON file storage backend.

Documents are plain UTF-8 JSON files. Writes go to a temporary file in the
same directory which is fsynced and then renamed over the target, so a crash
mid-write never leaves a truncated document. Exclusive access uses a sibling
``<name>.lock`` file created with O_EXCL.
"""

import os
import tempfile
import time
from collections.abc import Iterator
from contextlib import contextmanager, suppress
from pathlib import Path

from alexandria.errors import DocumentNotFoundError, StorageIOError
from alexandria.observability.logging import get_logger
from alexandria.storage.base import DocumentStore, StorageConfig

logger = get_logger(__name__)


class JsonFileStore(DocumentStore):
    """Document store backed by JSON files on the local filesystem."""

    storage_type = "json"

    def __init__(self, config: StorageConfig) -> None:
        """Initialize JSON file store."""
        super().__init__(config)
        # Lock files held by this instance -> nesting depth
        self._held: dict[Path, int] = {}

    def read_text(self, path: Path) -> str:
        """Read the raw document at ``path``."""
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise DocumentNotFoundError(
                f"Document not found: {path}",
                storage_type=self.storage_type,
                original_error=e,
            ) from e
        except (OSError, UnicodeDecodeError) as e:
            raise StorageIOError(
                f"Failed to read {path}: {e}",
                storage_type=self.storage_type,
                original_error=e,
            ) from e

    def write_text(self, path: Path, text: str) -> None:
        """Replace the document at ``path`` atomically."""
        tmp_path: str | None = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
            tmp_path = None
        except OSError as e:
            logger.error("document_write_failed", path=str(path), error=str(e))
            raise StorageIOError(
                f"Failed to write {path}: {e}",
                storage_type=self.storage_type,
                original_error=e,
            ) from e
        finally:
            if tmp_path is not None:
                with suppress(FileNotFoundError):
                    os.unlink(tmp_path)

        logger.debug("document_written", path=str(path), size=len(text))

    def exists(self, path: Path) -> bool:
        """Return True if the document file exists."""
        return path.is_file()

    @contextmanager
    def locked(self, path: Path) -> Iterator[None]:
        """Hold the document's lock file for the duration of the block."""
        lock_path = path.with_name(path.name + ".lock")

        if self._held.get(lock_path):
            self._held[lock_path] += 1
            try:
                yield
            finally:
                self._held[lock_path] -= 1
            return

        fd = self._acquire(lock_path)
        self._held[lock_path] = 1
        try:
            yield
        finally:
            del self._held[lock_path]
            os.close(fd)
            with suppress(FileNotFoundError):
                os.unlink(lock_path)
            logger.debug("document_lock_released", lock=str(lock_path))

    def _acquire(self, lock_path: Path) -> int:
        deadline = time.monotonic() + self.config.lock_timeout
        try:
            lock_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageIOError(
                f"Failed to create directory for {lock_path}: {e}",
                storage_type=self.storage_type,
                original_error=e,
            ) from e

        while True:
            try:
                fd = os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
            except FileExistsError:
                if self._break_stale_lock(lock_path):
                    continue
                if time.monotonic() >= deadline:
                    raise StorageIOError(
                        f"Timed out after {self.config.lock_timeout}s waiting for {lock_path}",
                        storage_type=self.storage_type,
                    )
                time.sleep(self.config.lock_poll_interval)
                continue
            except OSError as e:
                raise StorageIOError(
                    f"Failed to acquire {lock_path}: {e}",
                    storage_type=self.storage_type,
                    original_error=e,
                ) from e

            os.write(fd, str(os.getpid()).encode("ascii"))
            logger.debug("document_lock_acquired", lock=str(lock_path))
            return fd

    def _break_stale_lock(self, lock_path: Path) -> bool:
        stale_after = self.config.stale_lock_seconds
        if stale_after is None:
            return False
        try:
            age = time.time() - lock_path.stat().st_mtime
        except FileNotFoundError:
            # Released between our open and stat
            return True
        if age < stale_after:
            return False

        logger.warning("stale_lock_removed", lock=str(lock_path), age_seconds=round(age, 1))
        with suppress(FileNotFoundError):
            os.unlink(lock_path)
        return True
