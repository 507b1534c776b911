"""Content store for remcpy.

Maps an identifier to a single file on local disk.
Files are stored in: {root}/@{identifier}

There is no metadata database and no in-process locking: concurrent writers
to the same identifier race at the filesystem level and the last one wins.
Blocking file calls are pushed to the threadpool so the event loop keeps
serving other requests while a large upload is being written.
"""
import logging
import shutil
from pathlib import Path
from typing import BinaryIO, Protocol, Union

from fastapi.concurrency import run_in_threadpool

from .errors import CreateFailed, DeleteFailed, NotFound, ReadFailed, WriteFailed

logger = logging.getLogger(__name__)

IDENTIFIER_MARKER = "@"
DEFAULT_CHUNK_SIZE = 64 * 1024


class AsyncReader(Protocol):
    """Anything with an awaitable ``read(size)``, e.g. ``UploadFile``."""

    async def read(self, size: int = -1) -> bytes: ...


class ContentStore:
    """Identifier-addressed file storage rooted at a single directory."""

    def __init__(self, root: Union[str, Path] = "./store", chunk_size: int = DEFAULT_CHUNK_SIZE):
        self._root = Path(root)
        self._chunk_size = chunk_size

    @property
    def root(self) -> Path:
        return self._root

    def init_root(self) -> None:
        """Create the store directory. An existing directory is not an error.

        Raises:
            OSError: If the directory cannot be created (including when a
                non-directory already sits at the root path).
        """
        self._root.mkdir(parents=True, exist_ok=True)
        logger.info("Store directory ready: %s", self._root)

    def path_for(self, identifier: str) -> Path:
        """Return the storage path for *identifier* (marker included)."""
        return self._root / f"{IDENTIFIER_MARKER}{identifier}"

    async def put(self, identifier: str, reader: AsyncReader) -> int:
        """Stream everything from *reader* into the entry for *identifier*.

        The entry is created or truncated first, then filled chunk by chunk
        so the payload is never held in memory as a whole. A partially
        written file is left in place when the copy fails.

        Args:
            identifier: Key without the ``@`` marker.
            reader: Source of the bytes.

        Returns:
            Number of bytes written.

        Raises:
            CreateFailed: If the entry cannot be created.
            WriteFailed: If reading the source or writing the entry fails.
        """
        path = self.path_for(identifier)
        try:
            fh = await run_in_threadpool(open, path, "wb")
        except OSError as exc:
            logger.debug("Error creating os file %s: %s", path, exc)
            raise CreateFailed(identifier) from exc

        written = 0
        try:
            try:
                while True:
                    chunk = await reader.read(self._chunk_size)
                    if not chunk:
                        break
                    await run_in_threadpool(fh.write, chunk)
                    written += len(chunk)
            finally:
                await run_in_threadpool(fh.close)
        except OSError as exc:
            logger.debug("Error writing file %s to disk after %d bytes: %s", path, written, exc)
            raise WriteFailed(identifier) from exc

        logger.info("Stored %s (%d bytes)", path, written)
        return written

    async def get(self, identifier: str) -> BinaryIO:
        """Open the entry for *identifier* for reading.

        The caller owns the returned handle and must close it.

        Raises:
            NotFound: If nothing is stored under *identifier*.
            ReadFailed: For any other open error.
        """
        path = self.path_for(identifier)
        try:
            return await run_in_threadpool(open, path, "rb")
        except FileNotFoundError as exc:
            logger.debug("Error reading file from disk: %s", exc)
            raise NotFound(identifier) from exc
        except OSError as exc:
            logger.debug("Error reading file from disk: %s", exc)
            raise ReadFailed(identifier) from exc

    def delete(self, path: Union[str, Path]) -> None:
        """Remove *path* and anything below it. A missing path is a no-op.

        Raises:
            DeleteFailed: If the filesystem refuses the removal.
        """
        target = Path(path)
        try:
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            else:
                target.unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise DeleteFailed(str(path)) from exc
        logger.info("Deleted %s", target)
