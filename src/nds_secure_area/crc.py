"""CRC16 as used by the NDS cartridge header (poly 0xA001 reflected, seed 0xFFFF)."""

from __future__ import annotations

from typing import List


def _build_table(poly: int = 0xA001) -> List[int]:
    table: List[int] = []
    for byte in range(256):
        crc = byte
        for _ in range(8):
            crc = (crc >> 1) ^ poly if crc & 1 else crc >> 1
        table.append(crc)
    return table


CRC16_TABLE = _build_table()


def crc16(data: bytes, crc: int = 0xFFFF) -> int:
    for byte in data:
        crc = (crc >> 8) ^ CRC16_TABLE[(crc ^ byte) & 0xFF]
    return crc & 0xFFFF
