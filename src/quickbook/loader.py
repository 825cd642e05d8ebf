"""Loading source files and resolving include paths."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from quickbook.cursor import Position
from quickbook.errors import LoadError, LoadErrorKind


def load(path: Path, position: Position | None = None) -> str:
    """Read ``path`` as UTF-8, dropping a byte order mark and normalising newlines.

    Raises :class:`LoadError` if the file is missing or cannot be decoded.
    """
    try:
        data = path.read_bytes()
    except FileNotFoundError:
        raise LoadError(str(path), LoadErrorKind.NOT_FOUND, position) from None
    except OSError:
        raise LoadError(str(path), LoadErrorKind.UNREADABLE, position) from None
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise LoadError(str(path), LoadErrorKind.UNREADABLE, position) from None
    return text.replace("\r\n", "\n").replace("\r", "\n")


def find_include(name: str, current_dir: Path, include_path: Iterable[Path] = ()) -> Path | None:
    """Resolve an included file name.

    Tries the including file's directory first, then each search directory
    in order. Absolute names are used as they are.
    """
    candidate = Path(name)
    if candidate.is_absolute():
        return candidate if candidate.is_file() else None
    for directory in (current_dir, *include_path):
        path = directory / candidate
        if path.is_file():
            return path
    return None
