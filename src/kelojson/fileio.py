"""Read and write .kelojson files, optionally compressed.

Compression is chosen from the file suffix: .gz, .bz/.bz2, .xz or .zip.
Anything else is plain UTF-8 text.  I/O failures surface as
KeloJSONIOError; data errors from the reader propagate unchanged.
"""

from __future__ import annotations

import bz2
import gzip
import lzma
import zipfile
from pathlib import Path
from typing import IO

from loguru import logger

from kelojson.config import KeloJSONSettings
from kelojson.errors import KeloJSONIOError
from kelojson.model import DataSet
from kelojson.projection import Projection
from kelojson.reader import KeloJSONReader, ProgressCallback
from kelojson.writer import KeloJSONWriter

_OPENERS = {
    ".gz": gzip.open,
    ".bz": bz2.open,
    ".bz2": bz2.open,
    ".xz": lzma.open,
}


def compression_of(path: str | Path) -> str | None:
    """Return the compression suffix of a path, or None for plain text."""
    suffix = Path(path).suffix.lower()
    if suffix in _OPENERS or suffix == ".zip":
        return suffix
    return None


def _read_zip(path: Path) -> bytes:
    with zipfile.ZipFile(path) as zf:
        names = [n for n in zf.namelist() if not n.endswith("/")]
        if not names:
            raise KeloJSONIOError(f"Empty archive: {path}")
        preferred = [n for n in names if n.lower().endswith((".kelojson", ".json"))]
        name = (preferred or names)[0]
        logger.debug(f"Reading {name} from {path}")
        return zf.read(name)


def read_bytes(path: str | Path) -> bytes:
    """Read and decompress a file's raw content."""
    path = Path(path)
    compression = compression_of(path)
    try:
        if compression == ".zip":
            return _read_zip(path)
        if compression is not None:
            with _OPENERS[compression](path, "rb") as f:
                return f.read()
        with open(path, "rb") as f:
            return f.read()
    except (OSError, EOFError, zipfile.BadZipFile, lzma.LZMAError) as e:
        raise KeloJSONIOError(f"Cannot read {path}: {e}") from e


def read_file(
    path: str | Path,
    projection: Projection | None = None,
    settings: KeloJSONSettings | None = None,
    progress: ProgressCallback | None = None,
    reader: KeloJSONReader | None = None,
) -> DataSet:
    """Parse a .kelojson file (plain or compressed) into a DataSet.

    Pass ``reader`` to inspect its warnings afterwards.
    """
    logger.info(f"Parsing KeloJSON: {Path(path).absolute()}")
    reader = reader or KeloJSONReader(projection, settings, progress)
    return reader.parse(read_bytes(path))


def _open_for_write(path: Path, compression: str | None) -> IO[bytes]:
    if compression is None:
        return open(path, "wb")
    return _OPENERS[compression](path, "wb")


def write_file(
    path: str | Path,
    dataset: DataSet,
    projection: Projection | None = None,
    settings: KeloJSONSettings | None = None,
    pretty: bool | None = None,
) -> None:
    """Write a DataSet to a .kelojson file, compressing by suffix."""
    path = Path(path)
    payload = KeloJSONWriter(dataset, projection, settings).write(pretty).encode("utf-8")
    compression = compression_of(path)
    try:
        if compression == ".zip":
            entry = path.stem if path.stem.endswith(".kelojson") else f"{path.stem}.kelojson"
            with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
                zf.writestr(entry, payload)
        else:
            with _open_for_write(path, compression) as f:
                f.write(payload)
    except OSError as e:
        raise KeloJSONIOError(f"Cannot write {path}: {e}") from e
    logger.debug(f"Wrote {len(payload)} bytes to {path}")
