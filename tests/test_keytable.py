from __future__ import annotations

import pytest

from nds_secure_area import keytable
from nds_secure_area.feistel import ROUND_WORDS, TABLE_WORDS, encrypt_pair


def _reference_update(table, block):
    table = list(table)
    for j in range(ROUND_WORDS):
        chunk = bytes(block[(4 * j + i) % 8] for i in range(4))
        table[j] ^= int.from_bytes(chunk, "big")
    pair = (0, 0)
    index = 0
    while index < TABLE_WORDS:
        pair = encrypt_pair(table, *pair)
        table[index], table[index + 1] = pair
        index += 2
    return table


def _snapshot_update(table, block):
    """Variant that encrypts against a frozen copy; must not match."""
    table = list(table)
    for j in range(ROUND_WORDS):
        chunk = bytes(block[(4 * j + i) % 8] for i in range(4))
        table[j] ^= int.from_bytes(chunk, "big")
    frozen = list(table)
    pair = (0, 0)
    for index in range(0, TABLE_WORDS, 2):
        pair = encrypt_pair(frozen, *pair)
        table[index], table[index + 1] = pair
    return table


def test_make_keycode_masks_to_32_bits():
    assert keytable.make_keycode(0x80000001) == [0x80000001, 0x40000000, 0x00000002]


def test_seed_returns_independent_copy(seed_table):
    table = keytable.seed(seed_table)
    table[0] ^= 1
    assert table[0] != seed_table[0]
    assert len(table) == TABLE_WORDS


def test_seed_rejects_wrong_length(seed_table):
    with pytest.raises(ValueError):
        keytable.seed(seed_table[:-1])


def test_update_table_regenerates_in_place_in_order(seed_table):
    block = bytes(range(1, 13))
    table = keytable.seed(seed_table)
    keytable.update_table(table, block)
    assert table == _reference_update(seed_table, block)
    assert table != _snapshot_update(seed_table, block)


def test_update_table_only_reads_first_eight_bytes(seed_table):
    first = keytable.seed(seed_table)
    second = keytable.seed(seed_table)
    keytable.update_table(first, b"\x01\x02\x03\x04\x05\x06\x07\x08\xAA\xBB\xCC\xDD")
    keytable.update_table(second, b"\x01\x02\x03\x04\x05\x06\x07\x08\x00\x00\x00\x00")
    assert first == second


def test_apply_keycode_rewrites_keycode_through_cipher(seed_table):
    table = keytable.seed(seed_table)
    keycode = [1, 2, 3]
    expected = list(keycode)
    expected[2], expected[1] = encrypt_pair(table, expected[2], expected[1])
    expected[1], expected[0] = encrypt_pair(table, expected[1], expected[0])

    keytable.apply_keycode(table, keycode)
    assert keycode == expected
    assert table != list(seed_table)


def test_mix_game_code_applies_keycode_twice(seed_table):
    once = keytable.seed(seed_table)
    keycode_once = keytable.make_keycode(0x45434241)
    keytable.apply_keycode(once, keycode_once)

    twice = keytable.seed(seed_table)
    keycode_twice = keytable.mix_game_code(twice, 0x45434241)

    again = list(once)
    keytable.apply_keycode(again, keycode_once)
    assert twice == again
    assert keycode_twice == keycode_once
    assert twice != once


def test_derive_depends_on_game_code(seed_table):
    first, _ = keytable.derive(seed_table, 0x45434241)
    second, _ = keytable.derive(seed_table, 0x45434242)
    assert first != second
    assert keytable.derive(seed_table, 0x45434241)[0] == first


def test_raise_level_shifts_keycode_before_mixing(seed_table):
    table, keycode = keytable.derive(seed_table, 0x45434241)
    manual_table = list(table)
    manual_keycode = [keycode[0], (keycode[1] << 1) & 0xFFFFFFFF, keycode[2] >> 1]
    keytable.apply_keycode(manual_table, manual_keycode)

    keytable.raise_level(table, keycode)
    assert table == manual_table
    assert keycode == manual_keycode
