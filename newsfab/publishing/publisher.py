"""
Atomic publication of rendered output.

Rendered bytes are streamed into a temporary file next to the
destination and renamed over it only once the stream has been fully
consumed. Readers of the destination therefore see either the previous
complete file or the new complete file, never a partial write.

When no destination is configured the stream is forwarded verbatim to
a pass-through sink (stdout by default) with no atomicity.
"""

import asyncio
import logging
import os
import sys
import tempfile
from collections.abc import AsyncIterable
from pathlib import Path
from typing import BinaryIO

from newsfab.errors import PublishError

logger = logging.getLogger(__name__)

DEFAULT_FILE_MODE = 0o644


def _target_mode(path: Path) -> int:
    """Keep the mode of an existing destination, else use the default."""
    try:
        return path.stat().st_mode & 0o7777
    except FileNotFoundError:
        return DEFAULT_FILE_MODE


def _sync(f: BinaryIO) -> None:
    f.flush()
    os.fsync(f.fileno())


def _commit(tmp_path: Path, destination: Path) -> None:
    """Give the temp file its final mode and rename it into place."""
    os.chmod(tmp_path, _target_mode(destination))
    os.replace(tmp_path, destination)


def atomic_write_bytes(path: str | Path, data: bytes) -> None:
    """
    Write bytes to path atomically (temp file in same directory + rename).

    Raises:
        OSError: If the temporary file cannot be written or renamed
    """
    path = Path(path)
    fd, tmp_name = tempfile.mkstemp(
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            _sync(f)
        _commit(Path(tmp_name), path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class AtomicPublisher:
    """
    Publishes a byte stream to a file or to a pass-through sink.

    Usage:
        publisher = AtomicPublisher()
        await publisher.publish(renderer.render(snapshot), "news.html")
    """

    def __init__(self, sink: BinaryIO | None = None):
        """
        Initialize publisher.

        Args:
            sink: Pass-through stream used when no destination is given.
                Defaults to sys.stdout.buffer, resolved at publish time.
        """
        self._sink = sink

    async def publish(
        self,
        chunks: AsyncIterable[bytes],
        destination: str | Path | None = None,
    ) -> int:
        """
        Consume the stream and publish it.

        Args:
            chunks: Rendered output, possibly produced while being consumed
            destination: Target file, or None for the pass-through sink

        Returns:
            Number of bytes published

        Raises:
            PublishError: If the stream or the write fails. The destination
                keeps its prior content.
        """
        if destination is None:
            return await self._publish_passthrough(chunks)
        return await self._publish_atomic(chunks, Path(destination))

    async def _publish_passthrough(self, chunks: AsyncIterable[bytes]) -> int:
        sink = self._sink if self._sink is not None else sys.stdout.buffer
        written = 0
        try:
            async for chunk in chunks:
                sink.write(chunk)
                written += len(chunk)
            sink.flush()
        except PublishError:
            raise
        except Exception as e:
            raise PublishError(f"failed writing to output stream: {e}") from e
        return written

    async def _publish_atomic(
        self,
        chunks: AsyncIterable[bytes],
        destination: Path,
    ) -> int:
        directory = destination.parent
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=directory,
                prefix=f".{destination.name}.",
                suffix=".tmp",
            )
        except OSError as e:
            raise PublishError(f"cannot create temporary file in {directory}: {e}") from e

        tmp_path = Path(tmp_name)
        written = 0
        try:
            with os.fdopen(fd, "wb") as f:
                async for chunk in chunks:
                    f.write(chunk)
                    written += len(chunk)
                await asyncio.to_thread(_sync, f)
            await asyncio.to_thread(_commit, tmp_path, destination)
        except BaseException as e:
            tmp_path.unlink(missing_ok=True)
            if isinstance(e, Exception) and not isinstance(e, PublishError):
                raise PublishError(f"failed publishing {destination}: {e}") from e
            raise

        logger.info(f"Wrote output file: {destination} ({written} bytes)")
        return written
