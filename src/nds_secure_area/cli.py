"""Command line entrypoint for secure area encryption."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Iterable, Optional, Sequence

from .config import load_seed_table
from .rom import SECURE_AREA_OFFSET, decrypt_rom, prepare_for_hardware, read_header, verify_checksums
from .rom_io import load_rom, save_rom
from .secure_area import SECURE_AREA_SIZE, SecureAreaError, secure_area_status


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Encrypt or decrypt the secure area of an NDS ROM image.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("encrypt", "Encrypt a decrypted secure area and write the hardware tables."),
        ("decrypt", "Decrypt an encrypted secure area."),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("rom", help="ROM image (.nds, or .nds.zst).")
        sub.add_argument("--output", default=None, help="Destination image (defaults to overwriting the input).")
        sub.add_argument(
            "--seed-table",
            default=None,
            help="Path to the KEY1 seed table or an ARM7 BIOS dump (defaults to $NDS_SEED_TABLE).",
        )

    info = subparsers.add_parser("info", help="Show header fields and checksum status.")
    info.add_argument("rom", help="ROM image (.nds, or .nds.zst).")
    return parser.parse_args(argv)


def _seed_table(path: Optional[str]) -> Sequence[int]:
    return load_seed_table(Path(path) if path else None)


def _run_encrypt(args: argparse.Namespace) -> None:
    rom = load_rom(args.rom)
    changed = prepare_for_hardware(rom, _seed_table(args.seed_table))
    _finish("encrypt", args, rom, changed, "secure area already encrypted")


def _run_decrypt(args: argparse.Namespace) -> None:
    rom = load_rom(args.rom)
    changed = decrypt_rom(rom, _seed_table(args.seed_table))
    _finish("decrypt", args, rom, changed, "secure area already decrypted")


def _finish(command: str, args: argparse.Namespace, rom: bytearray, changed: bool, unchanged_note: str) -> None:
    if not changed:
        print(f"{command}: {unchanged_note}, nothing written")
        return
    produced = save_rom(args.output or args.rom, rom)
    print(f"{command} -> {produced}")


def _run_info(args: argparse.Namespace) -> None:
    rom = load_rom(args.rom)
    header = read_header(rom)
    print(f"title:            {header.title}")
    print(f"game code:        {header.game_code_text} ({header.game_code:08X})")
    if len(rom) >= SECURE_AREA_OFFSET + SECURE_AREA_SIZE:
        print(f"secure area:      {secure_area_status(rom[SECURE_AREA_OFFSET : SECURE_AREA_OFFSET + 8])}")
    for name, ok in verify_checksums(rom).items():
        print(f"{name + ' crc:':<18}{'ok' if ok else 'BAD'}")


COMMAND_MAP = {
    "encrypt": _run_encrypt,
    "decrypt": _run_decrypt,
    "info": _run_info,
}


def main(argv: Iterable[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        COMMAND_MAP[args.command](args)
    except (FileNotFoundError, SecureAreaError, ValueError) as exc:
        print(f"*** ERROR: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
