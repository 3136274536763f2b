"""Reading and writing ROM images, plain or zstd-compressed."""

from __future__ import annotations

from pathlib import Path
from typing import Union

import zstandard as zstd

PathLike = Union[str, Path]

MAX_ROM_SIZE = 256 * 1024 * 1024
ZSTD_SUFFIX = ".zst"


class RomTooLargeError(ValueError):
    """Raised when an image exceeds what a cartridge can address."""


def _is_compressed(path: Path) -> bool:
    return path.suffix.lower() == ZSTD_SUFFIX


def _decompress(path: Path, chunk_size: int = 1024 * 1024) -> bytes:
    dctx = zstd.ZstdDecompressor()
    chunks = []
    total = 0
    with path.open("rb") as handle, dctx.stream_reader(handle) as reader:
        while total <= MAX_ROM_SIZE:
            chunk = reader.read(chunk_size)
            if not chunk:
                break
            chunks.append(chunk)
            total += len(chunk)
    return b"".join(chunks)


def load_rom(path: PathLike) -> bytearray:
    """Read a whole ROM image into a mutable buffer."""

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"ROM image not found: {path}")

    if _is_compressed(path):
        data = _decompress(path)
    else:
        if path.stat().st_size > MAX_ROM_SIZE:
            raise RomTooLargeError(f"ROM image '{path}' is larger than 256 MB.")
        data = path.read_bytes()

    if len(data) > MAX_ROM_SIZE:
        raise RomTooLargeError(f"ROM image '{path}' is larger than 256 MB.")
    return bytearray(data)


def save_rom(path: PathLike, data: bytes) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    if _is_compressed(path):
        cctx = zstd.ZstdCompressor()
        path.write_bytes(cctx.compress(bytes(data)))
    else:
        path.write_bytes(bytes(data))
    return path
