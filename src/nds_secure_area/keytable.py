"""Key table derivation for the secure area cipher.

A working table starts as a copy of the constant seed table and is then
mixed with a three-word keycode derived from the game code. Every mix pass
re-encrypts the whole table in place, so each write is visible to the
encryptions that follow it.
"""

from __future__ import annotations

import struct
from typing import List, Sequence

from .feistel import MASK32, ROUND_WORDS, TABLE_WORDS, encrypt_pair


def seed(seed_table: Sequence[int]) -> List[int]:
    """Return a fresh working copy of the seed table."""

    if len(seed_table) != TABLE_WORDS:
        raise ValueError(f"Seed table must hold {TABLE_WORDS} words, got {len(seed_table)}")
    return list(seed_table)


def make_keycode(game_code: int) -> List[int]:
    game_code &= MASK32
    return [game_code, game_code >> 1, (game_code << 1) & MASK32]


def update_table(table: List[int], block: bytes) -> None:
    """Fold ``block`` into the round words and regenerate the whole table."""

    for j in range(ROUND_WORDS):
        acc = 0
        for i in range(4):
            acc = (acc << 8) | block[(j * 4 + i) & 7]
        table[j] ^= acc

    left = right = 0
    for i in range(0, TABLE_WORDS, 2):
        left, right = encrypt_pair(table, left, right)
        table[i] = left
        table[i + 1] = right


def apply_keycode(table: List[int], keycode: List[int]) -> None:
    keycode[2], keycode[1] = encrypt_pair(table, keycode[2], keycode[1])
    keycode[1], keycode[0] = encrypt_pair(table, keycode[1], keycode[0])
    update_table(table, struct.pack("<3I", *keycode))


def mix_game_code(table: List[int], game_code: int) -> List[int]:
    """Apply the game code twice and return the keycode it leaves behind.

    The second pass starts from the keycode words as rewritten by the first.
    """

    keycode = make_keycode(game_code)
    apply_keycode(table, keycode)
    apply_keycode(table, keycode)
    return keycode


def raise_level(table: List[int], keycode: List[int]) -> None:
    """Advance a game-code table to the one used for the secure area body."""

    keycode[1] = (keycode[1] << 1) & MASK32
    keycode[2] >>= 1
    apply_keycode(table, keycode)


def derive(seed_table: Sequence[int], game_code: int) -> tuple[List[int], List[int]]:
    table = seed(seed_table)
    keycode = mix_game_code(table, game_code)
    return table, keycode
