"""Blowfish-style Feistel transform used by the NDS KEY1 cipher."""

from __future__ import annotations

import struct
from typing import Sequence, Tuple

MASK32 = 0xFFFFFFFF

ROUND_WORDS = 18
SBOX_WORDS = 256
SBOX_COUNT = 4
TABLE_WORDS = ROUND_WORDS + SBOX_COUNT * SBOX_WORDS

_SBOX0 = ROUND_WORDS
_SBOX1 = ROUND_WORDS + SBOX_WORDS
_SBOX2 = ROUND_WORDS + 2 * SBOX_WORDS
_SBOX3 = ROUND_WORDS + 3 * SBOX_WORDS


def lookup(table: Sequence[int], value: int) -> int:
    a = table[_SBOX0 + ((value >> 24) & 0xFF)]
    b = table[_SBOX1 + ((value >> 16) & 0xFF)]
    c = table[_SBOX2 + ((value >> 8) & 0xFF)]
    d = table[_SBOX3 + (value & 0xFF)]
    return (d + (c ^ ((b + a) & MASK32))) & MASK32


def encrypt_pair(table: Sequence[int], left: int, right: int) -> Tuple[int, int]:
    a = left
    b = right
    for i in range(16):
        c = table[i] ^ a
        a = b ^ lookup(table, c)
        b = c
    return b ^ table[17], a ^ table[16]


def decrypt_pair(table: Sequence[int], left: int, right: int) -> Tuple[int, int]:
    a = left
    b = right
    for i in range(17, 1, -1):
        c = table[i] ^ a
        a = b ^ lookup(table, c)
        b = c
    return b ^ table[0], a ^ table[1]


def transform_block(table: Sequence[int], left: int, right: int, forward: bool) -> Tuple[int, int]:
    """Run the 16-round network over a word pair.

    The returned tuple is ``(left, right)`` in the caller's slots: the
    boundary XOR lands on the opposite half from the one it started in.
    """

    if forward:
        return encrypt_pair(table, left, right)
    return decrypt_pair(table, left, right)


def encrypt_block64(table: Sequence[int], value: int) -> int:
    left, right = encrypt_pair(table, (value >> 32) & MASK32, value & MASK32)
    return (left << 32) | right


def decrypt_block64(table: Sequence[int], value: int) -> int:
    left, right = decrypt_pair(table, (value >> 32) & MASK32, value & MASK32)
    return (left << 32) | right


def _crypt_words(table: Sequence[int], data: bytearray, offset: int, forward: bool) -> None:
    # Little-endian pair in memory: the word at offset + 4 is the left half.
    right, left = struct.unpack_from("<II", data, offset)
    left, right = transform_block(table, left, right, forward)
    struct.pack_into("<II", data, offset, right, left)


def encrypt_words(table: Sequence[int], data: bytearray, offset: int = 0) -> None:
    _crypt_words(table, data, offset, True)


def decrypt_words(table: Sequence[int], data: bytearray, offset: int = 0) -> None:
    _crypt_words(table, data, offset, False)
