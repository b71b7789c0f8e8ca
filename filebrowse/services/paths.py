from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .errors import InvalidName, PathEscapesRoot

logger = logging.getLogger(__name__)

_SEPARATORS = tuple({'/', os.sep, os.altsep or '/'})


@dataclass(frozen=True)
class ServerRoot:
    """The canonical directory every request is confined to."""

    path: Path

    @classmethod
    def from_config(cls, raw: str) -> ServerRoot:
        try:
            path = Path(raw).expanduser().resolve(strict=True)
        except (OSError, RuntimeError) as exc:
            raise RuntimeError(f'root-dir must be a valid directory: {raw}') from exc
        if not path.is_dir():
            raise RuntimeError(f'root-dir must be a valid directory: {raw}')
        return cls(path)

    def contains(self, candidate: Path) -> bool:
        return candidate == self.path or self.path in candidate.parents

    def relative(self, candidate: Path) -> str:
        if candidate == self.path:
            return ''
        return candidate.relative_to(self.path).as_posix()


def strip_relative(relative: str) -> str:
    return relative.lstrip(''.join(_SEPARATORS))


def validate_segment(name: str) -> str:
    if not name or name in {'.', '..'}:
        raise InvalidName(f'Invalid name: {name!r}')
    if '\x00' in name or any(sep in name for sep in _SEPARATORS):
        raise InvalidName(f'Name must be a single path segment: {name!r}')
    return name


def resolve_path(root: ServerRoot, relative: str, *, follow_final: bool = True) -> Path:
    """Map an untrusted relative path onto ``root``.

    Dot segments and symlinks are resolved before the containment check, so a
    link inside the tree cannot be used to reach outside it. With
    ``follow_final=False`` only the parent is canonicalised and the last
    segment is kept literally, which is what removal of a symlink needs.
    """
    if '\x00' in relative:
        raise InvalidName('Path contains a NUL byte')

    joined = root.path / strip_relative(relative)
    if follow_final:
        candidate = joined.resolve(strict=False)
    else:
        lexical = Path(os.path.normpath(joined))
        if lexical == root.path or lexical.name in {'', '.', '..'}:
            candidate = lexical.resolve(strict=False)
        else:
            candidate = lexical.parent.resolve(strict=False) / lexical.name

    if not root.contains(candidate):
        logger.warning('Rejected path outside root: %r', relative)
        raise PathEscapesRoot()
    return candidate


def resolve_child(root: ServerRoot, parent: Path, name: str) -> Path:
    candidate = parent / validate_segment(name)
    if not root.contains(candidate.parent.resolve(strict=False)):
        raise PathEscapesRoot()
    # an existing link at the final segment would be written through
    if not root.contains(candidate.resolve(strict=False)):
        logger.warning('Rejected link pointing outside root: %s', candidate)
        raise PathEscapesRoot()
    return candidate
