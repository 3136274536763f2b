"""Pull the KEY1 seed table out of an ARM7 BIOS dump."""

from __future__ import annotations

import argparse
import hashlib
import struct
from pathlib import Path
from typing import Iterable
import sys

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = REPO_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from nds_secure_area.config import (  # noqa: E402
    BIOS7_SIZE,
    SeedTableError,
    default_seed_table_path,
    seed_table_from_bytes,
)
from nds_secure_area.crc import crc16  # noqa: E402


def _parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Extract the KEY1 seed table from an ARM7 BIOS dump.")
    parser.add_argument("--bios", required=True, help="Path to the 16 KiB ARM7 BIOS dump.")
    parser.add_argument("--output", default=None, help="Destination file (defaults to the configured seed path).")
    return parser.parse_args(argv)


def main(argv: Iterable[str] | None = None) -> None:
    args = _parse_args(argv)
    bios_path = Path(args.bios)
    if not bios_path.exists():
        raise FileNotFoundError(f"BIOS dump not found: {bios_path}")
    blob = bios_path.read_bytes()
    if len(blob) != BIOS7_SIZE:
        raise SeedTableError(f"Expected a {BIOS7_SIZE:#x}-byte ARM7 BIOS dump, got {len(blob):#x} bytes")
    words = seed_table_from_bytes(blob)
    table = struct.pack(f"<{len(words)}I", *words)

    output_path = Path(args.output) if args.output else default_seed_table_path()
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(table)
    print(
        f"Seed table written to {output_path} "
        f"(crc16 {crc16(table):04X}, sha256 {hashlib.sha256(table).hexdigest()[:16]})"
    )


if __name__ == "__main__":
    main()
