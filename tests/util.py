import os
import tempfile
from typing import List

from tests.dummy_archive import DummyFile, write_archive


class TempArchive:
    """A `name.arh`/`name.ard` pair written to a temporary directory."""

    def __init__(self, files: List[DummyFile], alignment: int = 0x10, name: str = "bf3"):
        self._dir = tempfile.TemporaryDirectory()
        self.root = self._dir.name
        self.header_path = os.path.join(self.root, f"{name}.arh")
        self.data_path = os.path.join(self.root, f"{name}.ard")
        with open(self.header_path, "wb") as header, open(self.data_path, "wb") as data:
            write_archive(header, data, files, alignment)

    def write_filelist(self, name: str, *lines: str, folder: str = "Filelists") -> str:
        path = os.path.join(self.root, folder)
        os.makedirs(path, exist_ok=True)
        with open(os.path.join(path, name), "w", encoding="utf-8") as h:
            h.write("\n".join(lines))
        return path

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._dir.cleanup()
