"""Preparing a ROM image so debug hardware accepts its secure area."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

from .config import load_seed_table
from .crc import crc16
from .feistel import ROUND_WORDS, SBOX_COUNT, SBOX_WORDS
from .secure_area import DECRYPTED_ID, SECURE_AREA_SIZE, STATUS_DECRYPTED, SecureAreaCipher, secure_area_status

MIN_ROM_SIZE = 0x8000

GAME_TITLE_OFFSET = 0x00
GAME_CODE_OFFSET = 0x0C
SECURE_AREA_CRC_OFFSET = 0x6C
LOGO_OFFSET = 0xC0
LOGO_CRC_OFFSET = 0x15C
HEADER_CRC_OFFSET = 0x15E
SECURE_AREA_OFFSET = 0x4000

ROUND_TABLE_OFFSET = 0x1600
SBOX_TABLE_OFFSET = 0x1C00

TEST_PATTERN_OFFSET = 0x3000
TEST_PATTERN_HEAD = b"\xFF\x00\xFF\x00\xAA\x55\xAA\x55"
# (offset, fill byte) for the 0x200-byte constant blocks.
TEST_PATTERN_FILLS = (
    (0x3400, 0x00),
    (0x3600, 0xFF),
    (0x3800, 0x0F),
    (0x3A00, 0xF0),
    (0x3C00, 0x55),
    (0x3E00, 0xAA),
)
TEST_PATTERN_FILL_SIZE = 0x200
TEST_PATTERN_END = 0x3FFF


class InvalidRomError(ValueError):
    """Raised when a buffer is too small to hold the ROM regions we touch."""


@dataclass(frozen=True)
class RomHeader:
    title: str
    game_code: int
    secure_area_crc: int
    logo_crc: int
    header_crc: int

    @property
    def game_code_text(self) -> str:
        return struct.pack("<I", self.game_code).decode("ascii", errors="replace")


def _require_size(rom: bytes, size: int = MIN_ROM_SIZE) -> None:
    if len(rom) < size:
        raise InvalidRomError(f"ROM buffer must be at least {size:#x} bytes, got {len(rom):#x}")


def read_header(rom: bytes) -> RomHeader:
    _require_size(rom, HEADER_CRC_OFFSET + 2)
    title = bytes(rom[GAME_TITLE_OFFSET:GAME_CODE_OFFSET]).rstrip(b"\x00").decode("ascii", errors="replace")
    (game_code,) = struct.unpack_from("<I", rom, GAME_CODE_OFFSET)
    (secure_area_crc,) = struct.unpack_from("<H", rom, SECURE_AREA_CRC_OFFSET)
    logo_crc, header_crc = struct.unpack_from("<HH", rom, LOGO_CRC_OFFSET)
    return RomHeader(title, game_code, secure_area_crc, logo_crc, header_crc)


def secure_area_crc(rom: bytes) -> int:
    return crc16(rom[SECURE_AREA_OFFSET : SECURE_AREA_OFFSET + SECURE_AREA_SIZE])


def logo_crc(rom: bytes) -> int:
    return crc16(rom[LOGO_OFFSET:LOGO_CRC_OFFSET])


def header_crc(rom: bytes) -> int:
    return crc16(rom[:HEADER_CRC_OFFSET])


def verify_checksums(rom: bytes) -> Dict[str, bool]:
    header = read_header(rom)
    results = {
        "logo": header.logo_crc == logo_crc(rom),
        "header": header.header_crc == header_crc(rom),
    }
    if len(rom) >= MIN_ROM_SIZE:
        results["secure_area"] = header.secure_area_crc == secure_area_crc(rom)
    return results


def _write_secure_area_crc(rom: bytearray) -> None:
    struct.pack_into("<H", rom, SECURE_AREA_CRC_OFFSET, secure_area_crc(rom))


def _write_logo_crc(rom: bytearray) -> None:
    struct.pack_into("<H", rom, LOGO_CRC_OFFSET, logo_crc(rom))


def _write_header_crc(rom: bytearray) -> None:
    struct.pack_into("<H", rom, HEADER_CRC_OFFSET, header_crc(rom))


def _write_card_hash(rom: bytearray, cipher: SecureAreaCipher) -> None:
    card_hash = cipher.card_hash()
    struct.pack_into(f"<{ROUND_WORDS}I", rom, ROUND_TABLE_OFFSET, *card_hash.round_words)
    for index in range(SBOX_COUNT):
        offset = SBOX_TABLE_OFFSET + index * SBOX_WORDS * 4
        struct.pack_into(f"<{SBOX_WORDS}I", rom, offset, *card_hash.sbox(index))


def write_test_patterns(rom: bytearray) -> None:
    rom[TEST_PATTERN_OFFSET : TEST_PATTERN_OFFSET + len(TEST_PATTERN_HEAD)] = TEST_PATTERN_HEAD
    for i in range(TEST_PATTERN_OFFSET + len(TEST_PATTERN_HEAD), 0x3200):
        rom[i] = i & 0xFF
    for i in range(0x3200, 0x3400):
        rom[i] = (0xFF - i) & 0xFF
    for offset, value in TEST_PATTERN_FILLS:
        rom[offset : offset + TEST_PATTERN_FILL_SIZE] = bytes([value]) * TEST_PATTERN_FILL_SIZE
    rom[TEST_PATTERN_END] = 0x00


def _resolve_seed_table(seed_table: Optional[Sequence[int]]) -> Sequence[int]:
    return seed_table if seed_table is not None else load_seed_table()


def _needs_encryption(rom: bytes) -> bool:
    # A single surviving marker word still counts as decrypted; the cipher
    # rejects that case on its own.
    first, second = struct.unpack_from("<II", rom, SECURE_AREA_OFFSET)
    return first == DECRYPTED_ID or second == DECRYPTED_ID


def prepare_for_hardware(rom: bytearray, seed_table: Optional[Sequence[int]] = None) -> bool:
    """Encrypt the secure area and fill in the regions the hardware expects.

    Only the first 32 KiB of ``rom`` are read or written. Returns ``False``
    without touching the buffer when the secure area is already encrypted.
    """

    _require_size(rom)
    if not _needs_encryption(rom):
        return False

    (game_code,) = struct.unpack_from("<I", rom, GAME_CODE_OFFSET)
    cipher = SecureAreaCipher(game_code, _resolve_seed_table(seed_table))

    secure_area = bytearray(rom[SECURE_AREA_OFFSET : SECURE_AREA_OFFSET + SECURE_AREA_SIZE])
    cipher.encrypt(secure_area)
    rom[SECURE_AREA_OFFSET : SECURE_AREA_OFFSET + SECURE_AREA_SIZE] = secure_area

    _write_secure_area_crc(rom)
    _write_header_crc(rom)

    _write_card_hash(rom, cipher)
    write_test_patterns(rom)

    _write_secure_area_crc(rom)
    _write_logo_crc(rom)
    _write_header_crc(rom)
    return True


def decrypt_rom(rom: bytearray, seed_table: Optional[Sequence[int]] = None) -> bool:
    """Decrypt the secure area in place; ``False`` if it already was."""

    _require_size(rom)
    status = secure_area_status(rom[SECURE_AREA_OFFSET : SECURE_AREA_OFFSET + 8])
    if status == STATUS_DECRYPTED:
        return False

    (game_code,) = struct.unpack_from("<I", rom, GAME_CODE_OFFSET)
    secure_area = bytearray(rom[SECURE_AREA_OFFSET : SECURE_AREA_OFFSET + SECURE_AREA_SIZE])
    SecureAreaCipher(game_code, _resolve_seed_table(seed_table)).decrypt(secure_area)
    rom[SECURE_AREA_OFFSET : SECURE_AREA_OFFSET + SECURE_AREA_SIZE] = secure_area

    _write_secure_area_crc(rom)
    _write_header_crc(rom)
    return True
