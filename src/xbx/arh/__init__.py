"""
Reader for ARH/ARD archives and the xbc1 containers stored inside them.
"""
from xbx.arh.definitions import CompressionType
from xbx.arh.extractor import ArchiveExtractor, ExtractionStats
from xbx.arh.hashing import hash_path, normalize_path
from xbx.arh.header import ArchiveIndex, FileEntry
from xbx.arh.registry import PathRegistry

__version__ = "1.0.1"

__all__ = [
    "ArchiveExtractor",
    "ArchiveIndex",
    "CompressionType",
    "ExtractionStats",
    "FileEntry",
    "PathRegistry",
    "hash_path",
    "normalize_path",
]
