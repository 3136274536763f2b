"""Location and loading of the constant KEY1 seed table."""

from __future__ import annotations

import os
import struct
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional, Tuple, Union

from .feistel import TABLE_WORDS

PathLike = Union[str, Path]

SEED_TABLE_ENV = "NDS_SEED_TABLE"
SEED_TABLE_SIZE = TABLE_WORDS * 4

# The ARM7 BIOS carries the table right after its vector/header area.
BIOS7_SIZE = 0x4000
BIOS7_SEED_OFFSET = 0x30


class SeedTableError(ValueError):
    """Raised when a seed table file has an unexpected layout."""


def default_seed_table_path() -> Path:
    env_override = os.environ.get(SEED_TABLE_ENV)
    if env_override:
        return Path(env_override)
    base_dir = Path(__file__).resolve().parent.parent.parent
    return base_dir / "third_party" / "nds" / "blowfish_seed.bin"


def seed_table_from_bytes(blob: bytes) -> Tuple[int, ...]:
    if len(blob) == BIOS7_SIZE:
        blob = blob[BIOS7_SEED_OFFSET : BIOS7_SEED_OFFSET + SEED_TABLE_SIZE]
    if len(blob) != SEED_TABLE_SIZE:
        raise SeedTableError(
            f"Seed table must be {SEED_TABLE_SIZE:#x} bytes (or a {BIOS7_SIZE:#x}-byte ARM7 BIOS), got {len(blob):#x}"
        )
    return struct.unpack(f"<{TABLE_WORDS}I", blob)


@dataclass(frozen=True)
class SeedTableSource:
    path: Path

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", Path(self.path))

    @classmethod
    def default(cls) -> "SeedTableSource":
        return cls(default_seed_table_path())

    @property
    def available(self) -> bool:
        return self.path.is_file()

    def load(self) -> Tuple[int, ...]:
        if not self.path.exists():
            raise FileNotFoundError(
                f"Seed table not found at {self.path}. Set {SEED_TABLE_ENV} or place the table there."
            )
        return seed_table_from_bytes(self.path.read_bytes())


@lru_cache(maxsize=4)
def _load_cached(path: Path) -> Tuple[int, ...]:
    return SeedTableSource(path).load()


def load_seed_table(path: Optional[PathLike] = None) -> Tuple[int, ...]:
    """Load (once per path) the 1042-word seed table."""

    resolved = Path(path) if path else default_seed_table_path()
    return _load_cached(resolved.resolve())
