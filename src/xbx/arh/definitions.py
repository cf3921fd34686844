"""Definitions shared by the header, container and extraction layers."""

from __future__ import annotations

from enum import Enum
from typing import Dict, Tuple

# 'xbc1'; 0x31636278 when read as a little-endian u32
XBC1_MAGIC = b"xbc1"
XBC1_HEADER_SIZE = 0x30

HEADER_FILE_EXTENSION = ".arh"
DATA_FILE_EXTENSION = ".ard"

COPY_BUFFER_SIZE = 0x40000

UNMAPPED_DIR = ".unmapped"
UNMAPPED_EXTENSION = ".bin"

HASH_LIST_NAME = "hash_list.txt"
DEFAULT_FILELISTS_DIR = "Filelists"

# Sub-archives made of many independent xbc1 frames, addressed by a separate
#   table; unwrapping only the first frame would corrupt them.
MULTI_FRAME_SUFFIXES: Tuple[str, ...] = (".wismda",)

PATCH_PREFIXES: Tuple[str, ...] = ("/patch0/", "/patch1/")

# Order matters; only the first matching prefix is rewritten
PREFIX_REWRITES: Dict[str, str] = {
    "/chr_dl/": "/chr/dl/",
    "/chr_en/": "/chr/en/",
    "/chr_fc/": "/chr/fc/",
    "/chr_fctex/": "/chr/fctex/",
    "/chr_fceye/": "/chr/fceye/",
    "/chr_mb/": "/chr/mp/",
    "/chr_np/": "/chr/np/",
    "/chr_oj/": "/chr/oj/",
    "/chr_pac/": "/chr/pac/",
    "/chr_pc/": "/chr/pc/",
    "/chr_pt/": "/chr/pt/",
    "/chr_un/": "/chr/un/",
    "/chr_we/": "/chr/we/",
    "/chr_wd/": "/chr/wd/",
    "/chr_wdb/": "/chr/wdb/",
    "/chr_ws/": "/chr/ws/",
}

LOCALE_CODES: Tuple[str, ...] = ("us", "jp", "cn", "fr", "sp", "ge", "tw", "kr")


class CompressionType(int, Enum):
    """Payload compression of an xbc1 container."""

    ZLIB = 1
    ZSTD = 3


__all__ = [
    "XBC1_MAGIC",
    "XBC1_HEADER_SIZE",
    "HEADER_FILE_EXTENSION",
    "DATA_FILE_EXTENSION",
    "COPY_BUFFER_SIZE",
    "UNMAPPED_DIR",
    "UNMAPPED_EXTENSION",
    "HASH_LIST_NAME",
    "DEFAULT_FILELISTS_DIR",
    "MULTI_FRAME_SUFFIXES",
    "PATCH_PREFIXES",
    "PREFIX_REWRITES",
    "LOCALE_CODES",
    "CompressionType",
]
