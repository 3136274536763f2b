from __future__ import annotations

import random
import struct
from pathlib import Path
from typing import Callable, Tuple

import pytest

from nds_secure_area.config import SEED_TABLE_SIZE, SEED_TABLE_ENV, SeedTableSource
from nds_secure_area.feistel import TABLE_WORDS
from nds_secure_area.secure_area import DECRYPTED_ID

GAME_CODE = struct.unpack("<I", b"ABCE")[0]


def synthetic_seed_table(salt: int = 0x4E445331) -> Tuple[int, ...]:
    rng = random.Random(salt)
    return tuple(rng.getrandbits(32) for _ in range(TABLE_WORDS))


@pytest.fixture(scope="session")
def seed_table() -> Tuple[int, ...]:
    return synthetic_seed_table()


@pytest.fixture
def seed_file(tmp_path: Path, seed_table) -> Path:
    path = tmp_path / "blowfish_seed.bin"
    path.write_bytes(struct.pack(f"<{TABLE_WORDS}I", *seed_table))
    assert path.stat().st_size == SEED_TABLE_SIZE
    return path


@pytest.fixture
def plain_secure_area() -> bytearray:
    rng = random.Random(1234)
    data = bytearray(rng.getrandbits(8) for _ in range(0x4000))
    struct.pack_into("<II", data, 0, DECRYPTED_ID, DECRYPTED_ID)
    return data


@pytest.fixture
def make_rom() -> Callable[..., bytearray]:
    def _make(size: int = 0x8000, game_code: int = GAME_CODE, decrypted: bool = True) -> bytearray:
        rng = random.Random(size ^ game_code)
        rom = bytearray(rng.getrandbits(8) for _ in range(size))
        rom[0:12] = b"SECURETEST\x00\x00"
        struct.pack_into("<I", rom, 0x0C, game_code)
        if decrypted:
            struct.pack_into("<II", rom, 0x4000, DECRYPTED_ID, DECRYPTED_ID)
        else:
            struct.pack_into("<II", rom, 0x4000, 0x12345678, 0x9ABCDEF0)
        return rom

    return _make


def hardware_seed_table():
    source = SeedTableSource.default()
    if not source.available:
        return None
    return source.load()


requires_hardware_seed = pytest.mark.skipif(
    hardware_seed_table() is None,
    reason=f"hardware seed table not configured (set {SEED_TABLE_ENV})",
)
