"""KEY1 encryption of the ARM9 secure area."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from . import keytable
from .config import SeedTableError
from .feistel import MASK32, ROUND_WORDS, SBOX_COUNT, SBOX_WORDS, TABLE_WORDS, decrypt_words, encrypt_pair, encrypt_words

# Check words the first block decrypts to ("encr", "yObj").
MAGIC30 = 0x72636E65
MAGIC34 = 0x6A624F79
# ARM breakpoint instruction left in place of the check words once decrypted.
DECRYPTED_ID = 0xE7FFDEFF

SECURE_AREA_SIZE = 0x4000
ENCRYPTED_SIZE = 0x800
BLOCK_SIZE = 8

RTC_SALT = 0x0380FEB2

STATUS_DECRYPTED = "decrypted"
STATUS_ENCRYPTED = "encrypted"
STATUS_CORRUPT = "corrupt"


class SecureAreaError(RuntimeError):
    """Raised when the secure area cannot be transformed."""


class DecryptionMismatch(SecureAreaError):
    """Raised when the header block does not decrypt to the check words."""


class SecureAreaNotDecrypted(SecureAreaError):
    """Raised when encryption is requested for a block without the breakpoint marker."""


class SecureAreaTooShort(SecureAreaError, ValueError):
    """Raised when a buffer cannot hold the encrypted part of the secure area."""


@dataclass(frozen=True)
class CardHash:
    """Key table written to the ROM for the hardware, plus the RTC-derived words."""

    table: Tuple[int, ...]
    rtc_x00: int
    rtc_x04: int
    rand1: int
    rand3: int

    @property
    def round_words(self) -> Tuple[int, ...]:
        return self.table[:ROUND_WORDS]

    def sbox(self, index: int) -> Tuple[int, ...]:
        if not 0 <= index < SBOX_COUNT:
            raise IndexError(f"S-box index out of range: {index}")
        start = ROUND_WORDS + index * SBOX_WORDS
        return self.table[start : start + SBOX_WORDS]


def secure_area_status(data: bytes) -> str:
    first, second = struct.unpack_from("<II", data, 0)
    if first == DECRYPTED_ID and second == DECRYPTED_ID:
        return STATUS_DECRYPTED
    if first != DECRYPTED_ID and second != DECRYPTED_ID:
        return STATUS_ENCRYPTED
    return STATUS_CORRUPT


class SecureAreaCipher:
    """Secure area codec bound to one game code.

    Each operation derives its own key tables from the seed table, so an
    instance holds no working state between calls.
    """

    def __init__(self, game_code: int, seed_table: Sequence[int]):
        self.game_code = game_code & MASK32
        self.seed_table = tuple(seed_table)
        if len(self.seed_table) != TABLE_WORDS:
            raise SeedTableError(f"Seed table must hold {TABLE_WORDS} words, got {len(self.seed_table)}")

    def _level2(self) -> Tuple[List[int], List[int]]:
        return keytable.derive(self.seed_table, self.game_code)

    def _level3(self) -> List[int]:
        table, keycode = self._level2()
        keytable.raise_level(table, keycode)
        return table

    def decrypt(self, data: bytearray) -> None:
        _check_length(data)
        header = bytearray(data[:BLOCK_SIZE])

        table, keycode = self._level2()
        decrypt_words(table, header)
        keytable.raise_level(table, keycode)
        decrypt_words(table, header)

        first, second = struct.unpack_from("<II", header, 0)
        if first != MAGIC30 or second != MAGIC34:
            raise DecryptionMismatch(
                f"Secure area header decrypted to {first:08X} {second:08X} for game code {self.game_code:08X}"
            )

        struct.pack_into("<II", data, 0, DECRYPTED_ID, DECRYPTED_ID)
        for offset in range(BLOCK_SIZE, ENCRYPTED_SIZE, BLOCK_SIZE):
            decrypt_words(table, data, offset)

    def encrypt(self, data: bytearray) -> None:
        _check_length(data)
        if secure_area_status(data) != STATUS_DECRYPTED:
            raise SecureAreaNotDecrypted("Secure area does not start with the decrypted marker")

        table = self._level3()
        for offset in range(BLOCK_SIZE, ENCRYPTED_SIZE, BLOCK_SIZE):
            encrypt_words(table, data, offset)

        struct.pack_into("<II", data, 0, MAGIC30, MAGIC34)
        encrypt_words(table, data, 0)
        table, _ = self._level2()
        encrypt_words(table, data, 0)

    def card_hash(self, rtc: int = 0) -> CardHash:
        """Derive the card hash table handed to the hardware.

        ``rtc`` stands in for the console clock reading; it is a fixed value,
        and the words it produces never touch the table itself.
        """

        table, _ = self._level2()
        rtc_x04, rtc_x00 = encrypt_pair(table, (rtc >> 32) & MASK32, rtc & MASK32)
        rand1 = rtc_x00 ^ rtc_x04
        rand3 = rtc_x04 ^ RTC_SALT
        rand3, rand1 = encrypt_pair(table, rand3, rand1)
        return CardHash(tuple(table), rtc_x00, rtc_x04, rand1, rand3)


def _check_length(data: bytes) -> None:
    if len(data) < ENCRYPTED_SIZE:
        raise SecureAreaTooShort(f"Secure area buffer must be at least {ENCRYPTED_SIZE:#x} bytes, got {len(data):#x}")


def encrypt_secure_area(data: bytearray, game_code: int, seed_table: Sequence[int]) -> None:
    SecureAreaCipher(game_code, seed_table).encrypt(data)


def decrypt_secure_area(data: bytearray, game_code: int, seed_table: Sequence[int]) -> None:
    SecureAreaCipher(game_code, seed_table).decrypt(data)
