from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterable, Iterable, Optional

from .errors import ErrorKind, InvalidName, OperationResult, PathEscapesRoot, TargetMissing
from .paths import ServerRoot, resolve_child, resolve_path

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class UploadPart:
    filename: Optional[str]
    chunks: AsyncIterable[bytes]


@dataclass(frozen=True)
class UploadOutcome:
    file_name: str
    bytes_written: int
    success: bool
    error: Optional[ErrorKind] = None
    error_detail: Optional[str] = None


@dataclass(frozen=True)
class UploadReport:
    outcomes: list[UploadOutcome]

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.success)

    @property
    def failed(self) -> int:
        return len(self.outcomes) - self.succeeded

    def to_result(self) -> OperationResult:
        data = [
            {
                'fileName': o.file_name,
                'bytesWritten': o.bytes_written,
                'success': o.success,
                'error': o.error.value if o.error else None,
                'errorDetail': o.error_detail,
            }
            for o in self.outcomes
        ]
        message = f'uploaded {self.succeeded} of {len(self.outcomes)} file(s)'
        if self.failed:
            return OperationResult.failed(message, ErrorKind.IO_FAILURE, data=data)
        return OperationResult.ok(message, data=data)


class _PartFailed(Exception):
    def __init__(self, written: int, kind: ErrorKind, detail: str):
        super().__init__(detail)
        self.written = written
        self.kind = kind
        self.detail = detail


class UploadIngester:
    """Streams uploaded parts into a directory under the server root.

    Existing files with the same name are overwritten and concurrent writers
    to one name race at the filesystem level. In the default mode a failed
    part leaves whatever was written on disk; with ``atomic=True`` data goes
    to a temporary file that only replaces the destination once complete.
    """

    def __init__(self, root: ServerRoot, chunk_size: int = DEFAULT_CHUNK_SIZE, atomic: bool = False):
        self.root = root
        self.chunk_size = chunk_size
        self.atomic = atomic

    def target_dir(self, rel: str) -> Path:
        target = resolve_path(self.root, rel)
        if not target.is_dir():
            raise TargetMissing(f'failed to save file to path: /{self.root.relative(target)}')
        return target

    async def ingest(self, rel: str, parts: Iterable[UploadPart] | AsyncIterable[UploadPart]) -> UploadReport:
        target_dir = self.target_dir(rel)
        outcomes: list[UploadOutcome] = []

        if hasattr(parts, '__aiter__'):
            async for part in parts:
                outcomes.append(await self._ingest_part(target_dir, part))
        else:
            for part in parts:
                outcomes.append(await self._ingest_part(target_dir, part))

        report = UploadReport(outcomes)
        logger.info('Upload into %s finished: %d succeeded, %d failed', target_dir, report.succeeded, report.failed)
        return report

    async def _ingest_part(self, target_dir: Path, part: UploadPart) -> UploadOutcome:
        name = part.filename or ''
        if not name:
            logger.warning('Upload part without a file name rejected')
            return UploadOutcome(name, 0, False, ErrorKind.MISSING_FILE_NAME, 'Missing file name')

        try:
            destination = resolve_child(self.root, target_dir, name)
        except (InvalidName, PathEscapesRoot) as exc:
            logger.warning('Upload file name rejected: %r', name)
            return UploadOutcome(name, 0, False, exc.kind, str(exc))

        try:
            if self.atomic:
                written = await self._write_atomic(destination, part.chunks)
            else:
                written = await self._write(destination, part.chunks)
        except _PartFailed as exc:
            logger.warning('Upload of %s failed after %d bytes: %s', destination, exc.written, exc.detail)
            return UploadOutcome(name, exc.written, False, exc.kind, exc.detail)

        logger.info('Received uploaded file %s (%d bytes)', destination, written)
        return UploadOutcome(name, written, True)

    async def _write(self, destination: Path, chunks: AsyncIterable[bytes]) -> int:
        try:
            handle = destination.open('wb')
        except OSError as exc:
            raise _PartFailed(0, ErrorKind.IO_FAILURE, f'failed to save file to path: {destination.name}: {exc.strerror or exc}')
        with handle:
            return await self._copy(handle, chunks)

    async def _write_atomic(self, destination: Path, chunks: AsyncIterable[bytes]) -> int:
        try:
            fd, tmp_path = tempfile.mkstemp(prefix=f'.{destination.name}.', suffix='.part', dir=str(destination.parent))
        except OSError as exc:
            raise _PartFailed(0, ErrorKind.IO_FAILURE, f'failed to save file to path: {destination.name}: {exc.strerror or exc}')
        try:
            with os.fdopen(fd, 'wb') as handle:
                written = await self._copy(handle, chunks)
            try:
                os.replace(tmp_path, destination)
            except OSError as exc:
                raise _PartFailed(written, ErrorKind.IO_FAILURE, exc.strerror or str(exc)) from exc
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        return written

    async def _copy(self, handle, chunks: AsyncIterable[bytes]) -> int:
        written = 0
        pending = bytearray()
        try:
            try:
                async for chunk in chunks:
                    pending.extend(chunk)
                    if len(pending) >= self.chunk_size:
                        block = bytes(pending)
                        pending.clear()
                        handle.write(block)
                        written += len(block)
            finally:
                # whatever arrived before a failure still reaches the file
                if pending:
                    block = bytes(pending)
                    pending.clear()
                    handle.write(block)
                    written += len(block)
            handle.flush()
            os.fsync(handle.fileno())
        except OSError as exc:
            raise _PartFailed(written, ErrorKind.IO_FAILURE, exc.strerror or str(exc)) from exc
        return written
