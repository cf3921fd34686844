import argparse
import logging
import os
from io import StringIO
from typing import Any, Optional, Type

import pytest
from relic.core import CLI
from relic.core.cli import CliPluginGroup, CliPlugin

from tests.dummy_archive import DummyFile, make_container
from tests.util import TempArchive
from xbx.arh.cli import (
    RelicArhCli,
    RelicArhExtractAllCli,
    RelicArhExtractFileCli,
    RelicArhExtractHashCli,
    RelicArhHashListCli,
)
from xbx.arh.hashing import hash_path

RAW = b"Orks are da biggust and da strongest."
TEXT = b"We'll be off as soon as the fuel arrives. " * 100

FILES = [
    DummyFile("/chr/pc/pc010101.wimdo", RAW),
    DummyFile("/menu/title.wilay", make_container(TEXT), len(TEXT)),
    DummyFile(0xDA7EB7B09B34DD80, make_container(RAW)),
]


def _run(*args: str) -> str:
    logger = logging.getLogger()
    with StringIO() as logFile:
        logging.basicConfig(
            stream=logFile, level=logging.DEBUG, format="%(message)s", force=True
        )
        try:
            CLI.run_with("relic", "arh", *args, logger=logger)
            result = logFile.getvalue()
        finally:
            # the stream is closed on exit; later records must not reach it
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
    print("\nLOG:")
    print(result)
    return result


@pytest.mark.parametrize(
    "cli",
    [
        RelicArhCli,
        RelicArhExtractAllCli,
        RelicArhExtractFileCli,
        RelicArhExtractHashCli,
        RelicArhHashListCli,
    ],
)
@pytest.mark.parametrize("parent", [True, False])
def test_init_cli(cli: Type[CliPlugin | CliPluginGroup], parent: bool):
    parent_parser: Optional[Any] = None
    if parent:
        parent_parser = argparse.ArgumentParser().add_subparsers()

    cli(parent=parent_parser)


@pytest.mark.parametrize("no_unwrap", [False, True])
def test_cli_extract_all(no_unwrap: bool):
    with TempArchive(FILES) as archive:
        archive.write_filelist("list.txt", "chr/pc/pc010101.wimdo", "menu/title.wilay")
        out_dir = os.path.join(archive.root, "out")
        args = ["extract-all", archive.header_path, "-o", out_dir]
        if no_unwrap:
            args.append("--no-unwrap")
        result = _run(*args)

        with open(os.path.join(out_dir, "chr", "pc", "pc010101.wimdo"), "rb") as h:
            assert h.read() == RAW
        # flagged compressed by the header; always decoded
        with open(os.path.join(out_dir, "menu", "title.wilay"), "rb") as h:
            assert h.read() == TEXT
        with open(os.path.join(out_dir, ".unmapped", "DA7EB7B09B34DD80.bin"), "rb") as h:
            assert h.read() == (make_container(RAW) if no_unwrap else RAW)
        assert "Known Hashes: 2/3" in result


def test_cli_extract_all_default_output():
    with TempArchive(FILES) as archive:
        _run("extract-all", archive.header_path)
        assert os.path.isdir(os.path.join(archive.root, "extracted", ".unmapped"))


def test_cli_extract_all_missing_data_file():
    with TempArchive(FILES) as archive:
        os.unlink(archive.data_path)
        result = _run("extract-all", archive.header_path)
        assert "Failed to open arh/ard files." in result


def test_cli_extract_file():
    with TempArchive(FILES) as archive:
        out_dir = os.path.join(archive.root, "out")
        _run("extract-file", archive.header_path, "Menu\\Title.wilay", "-o", out_dir)
        with open(os.path.join(out_dir, "Menu", "Title.wilay"), "rb") as h:
            assert h.read() == TEXT


def test_cli_extract_file_missing():
    with TempArchive(FILES) as archive:
        out_dir = os.path.join(archive.root, "out")
        result = _run("extract-file", archive.header_path, "/nope.bin", "-o", out_dir)
        assert "Failed to extract" in result
        assert not os.path.exists(os.path.join(out_dir, "nope.bin"))


@pytest.mark.parametrize("value", ["DA7EB7B09B34DD80", "0xda7eb7b09b34dd80"])
def test_cli_extract_hash(value: str):
    with TempArchive(FILES) as archive:
        out_dir = os.path.join(archive.root, "out")
        _run("extract-hash", archive.header_path, value, "-o", out_dir)
        with open(os.path.join(out_dir, "DA7EB7B09B34DD80.bin"), "rb") as h:
            assert h.read() == RAW


@pytest.mark.parametrize("value", ["DA7EB7B0", "NOTAHEXHASH00000"])
def test_cli_extract_hash_invalid(value: str):
    with TempArchive(FILES) as archive:
        result = _run("extract-hash", archive.header_path, value)
        assert "Hash string" in result or "Unable to parse" in result


def test_cli_hash_list():
    with TempArchive(FILES) as archive:
        archive.write_filelist("list.txt", "chr/pc/pc010101.wimdo")
        _run("hash-list", archive.header_path)
        with open(os.path.join(archive.root, "hash_list.txt"), encoding="utf-8") as h:
            lines = h.read().splitlines()

    assert lines == [
        f"{hash_path('/chr/pc/pc010101.wimdo'):016X}|/chr/pc/pc010101.wimdo",
        f"{hash_path('/menu/title.wilay'):016X}|",
        "DA7EB7B09B34DD80|",
    ]


def test_cli_truncated_header():
    with TempArchive(FILES) as archive:
        with open(archive.header_path, "wb") as h:
            h.write(b"ARH2")
        result = _run("extract-all", archive.header_path)
        assert "Failed to open arh/ard files." in result
        assert not os.path.exists(os.path.join(archive.root, "extracted"))


@pytest.mark.parametrize("command", ["extract-file", "extract-hash"])
def test_cli_extract_corrupt_entry(command: str):
    corrupt = make_container(TEXT, payload=b"garbage!" * 32)
    files = [DummyFile("/menu/title.wilay", corrupt, len(TEXT))]
    with TempArchive(files) as archive:
        out_dir = os.path.join(archive.root, "out")
        target = (
            "/menu/title.wilay"
            if command == "extract-file"
            else f"{hash_path('/menu/title.wilay'):016X}"
        )
        result = _run(command, archive.header_path, target, "-o", out_dir)
        assert "Failed to extract" in result
        assert "Corrupt xbc1 payload" in result
        assert [f for _, _, names in os.walk(out_dir) for f in names] == []
        assert "extracted to" not in result


def test_cli_logging_detached_after_run():
    with TempArchive(FILES) as archive:
        _run("hash-list", archive.header_path)
    for handler in logging.getLogger().handlers:
        assert not getattr(getattr(handler, "stream", None), "closed", False)
