from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Union

from .errors import ErrorKind, InvalidName, OperationResult
from .paths import ServerRoot, resolve_child, resolve_path

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S'


class FileKind(str, Enum):
    FILE = 'File'
    DIRECTORY = 'Directory'
    SYMBOLIC_LINK = 'SymbolicLink'


@dataclass(frozen=True)
class DirectoryEntry:
    name: str
    kind: FileKind
    size: int
    last_accessed: str


@dataclass(frozen=True)
class DirectoryListing:
    display_name: str
    entries: list[DirectoryEntry] = field(default_factory=list)


@dataclass(frozen=True)
class ServeAsFile:
    """The listed path is a file; the caller should serve it statically."""

    path: Path
    relative: str


ListResult = Union[DirectoryListing, ServeAsFile]


def _classify(entry: os.DirEntry) -> FileKind:
    try:
        if entry.is_dir(follow_symlinks=True):
            return FileKind.DIRECTORY
        if entry.is_file(follow_symlinks=True):
            return FileKind.FILE
    except OSError:
        pass
    return FileKind.SYMBOLIC_LINK


def _describe(entry: os.DirEntry) -> DirectoryEntry:
    size = 0
    last_accessed = ''
    try:
        stat = entry.stat(follow_symlinks=True)
    except OSError:
        stat = None
    if stat is not None:
        size = stat.st_size
        try:
            last_accessed = datetime.fromtimestamp(stat.st_atime).strftime(TIMESTAMP_FORMAT)
        except (OverflowError, OSError, ValueError):
            last_accessed = ''
    return DirectoryEntry(name=entry.name, kind=_classify(entry), size=size, last_accessed=last_accessed)


class FileOps:
    def __init__(self, root: ServerRoot):
        self.root = root

    def safe_path(self, rel: str) -> Path:
        return resolve_path(self.root, rel)

    def list_dir(self, rel: str) -> ListResult:
        """Describe the immediate children of ``rel``.

        Entries come back in directory enumeration order. A missing path yields
        an empty listing with an empty display name.
        """
        target = self.safe_path(rel)
        logger.debug('list files for path: %s', target)

        if target.is_dir():
            try:
                with os.scandir(target) as it:
                    entries = [_describe(entry) for entry in it]
            except OSError as exc:
                logger.warning('Cannot read directory %s: %s', target, exc)
                entries = []
            return DirectoryListing(display_name=f'/{self.root.relative(target)}', entries=entries)

        if target.is_file():
            return ServeAsFile(path=target, relative=self.root.relative(target))

        link = resolve_path(self.root, rel, follow_final=False)
        if link.is_symlink():
            return ServeAsFile(path=link, relative=self.root.relative(link))

        return DirectoryListing(display_name='', entries=[])

    def mkdir(self, rel: str, name: str) -> OperationResult:
        parent = self.safe_path(rel)
        try:
            target = resolve_child(self.root, parent, name)
        except InvalidName as exc:
            return OperationResult.failed(str(exc), ErrorKind.INVALID_NAME)

        try:
            target.mkdir(parents=False, exist_ok=False)
        except FileExistsError:
            return OperationResult.failed(f'Already exists: {name}', ErrorKind.ALREADY_EXISTS)
        except FileNotFoundError:
            return OperationResult.failed('Parent directory not found', ErrorKind.NOT_FOUND)
        except OSError as exc:
            return OperationResult.failed(exc.strerror or str(exc), ErrorKind.IO_FAILURE)

        created = self.root.relative(target)
        logger.info('Created directory %s', target)
        return OperationResult.ok(f'create dir: /{created}')

    def delete(self, rel: str) -> OperationResult:
        target = resolve_path(self.root, rel, follow_final=False)
        if target == self.root.path:
            return OperationResult.failed('Refusing to delete the server root', ErrorKind.IO_FAILURE)

        display = f'/{self.root.relative(target)}'
        try:
            if target.is_symlink() or target.is_file():
                target.unlink()
            elif target.is_dir():
                shutil.rmtree(target)
            else:
                return OperationResult.ok(f'nothing to delete: {display}')
        except FileNotFoundError:
            return OperationResult.ok(f'nothing to delete: {display}')
        except OSError as exc:
            logger.warning('Delete failed for %s: %s', target, exc)
            return OperationResult.failed(exc.strerror or str(exc), ErrorKind.IO_FAILURE)

        logger.info('Deleted %s', target)
        return OperationResult.ok(f'deleted: {display}')
