from __future__ import annotations

import os.path
from argparse import ArgumentParser, Namespace
from logging import Logger
from typing import Optional

from relic.core.cli import CliPluginGroup, _SubParsersAction, CliPlugin, RelicArgParser
from relic.core.cli import (
    get_file_type_validator,
    get_dir_type_validator,
    get_path_validator,
)
from relic.core.logmsg import BraceMessage

from xbx.arh.definitions import HASH_LIST_NAME
from xbx.arh.errors import ArhError
from xbx.arh.extractor import ArchiveExtractor
from xbx.arh.hashing import format_hash, parse_hash

_SUCCESS = 0
_FAILURE = 1


def _default_output_dir(infile: str) -> str:
    return os.path.join(os.path.dirname(os.path.abspath(infile)), "extracted")


def _add_common_arguments(parser: ArgumentParser, output_help: str) -> None:
    parser.add_argument(
        "src_arh",
        type=get_file_type_validator(exists=True),
        help="Source .arh File; the .ard data file must sit next to it",
    )
    parser.add_argument(
        "--filelists",
        type=get_dir_type_validator(exists=True),
        default=None,
        help="Directory of wordlists used to recover file names"
        " (default: 'Filelists' next to the .arh file)",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=get_path_validator(exists=False),
        default=None,
        help=output_help,
    )


def _add_unwrap_argument(parser: ArgumentParser) -> None:
    parser.add_argument(
        "--no-unwrap",
        help="Keep xbc1 containers wrapped unless the header flags the file as compressed",
        action="store_true",
        default=False,
    )


def _open(ns: Namespace, logger: Logger) -> Optional[ArchiveExtractor]:
    try:
        return ArchiveExtractor.open(
            ns.src_arh,
            filelists=ns.filelists,
            auto_unwrap=not getattr(ns, "no_unwrap", False),
            logger=logger,
        )
    except ArhError as e:
        logger.error(BraceMessage("Failed to open arh/ard files. {0}", e))
        return None


class RelicArhCli(CliPluginGroup):
    GROUP = "relic.cli.arh"

    def _create_parser(
        self, command_group: Optional[_SubParsersAction] = None
    ) -> ArgumentParser:
        name = "arh"
        if command_group is None:
            return RelicArgParser(name)
        return command_group.add_parser(name)


class RelicArhExtractAllCli(CliPlugin):
    def _create_parser(
        self, command_group: Optional[_SubParsersAction] = None
    ) -> ArgumentParser:
        parser: ArgumentParser
        desc = """Extracts all files from an .arh/.ard archive.
            Files whose name could not be recovered are written to '.unmapped/[HASH].bin'."""
        if command_group is None:
            parser = RelicArgParser("extract-all", description=desc)
        else:
            parser = command_group.add_parser("extract-all", description=desc)

        _add_common_arguments(
            parser, "Output Directory (default: 'extracted' next to the .arh file)"
        )
        _add_unwrap_argument(parser)
        return parser

    def command(self, ns: Namespace, *, logger: Logger) -> Optional[int]:
        infile: str = ns.src_arh
        outdir: str = ns.output or _default_output_dir(infile)

        logger.info(BraceMessage("Unpacking `{0}`", infile))
        extractor = _open(ns, logger)
        if extractor is None:
            return _FAILURE

        def _progress(current: int, total: int) -> None:
            if current % 500 == 0 or current == total:
                logger.info(
                    BraceMessage(
                        "  Progress: {0}/{1} files ({2}%)",
                        current,
                        total,
                        current * 100 // total,
                    )
                )

        with extractor:
            stats = extractor.extract_all(outdir, on_progress=_progress)

        logger.info(
            BraceMessage(
                "Extraction complete: {0} files extracted ({1} unmapped)",
                stats.extracted_files,
                stats.unmapped_files,
            )
        )
        if stats.failed_files > 0:
            logger.warning(BraceMessage("Failed: {0} files", stats.failed_files))
            return _FAILURE
        logger.info("Done.")
        return _SUCCESS


class RelicArhExtractFileCli(CliPlugin):
    def _create_parser(
        self, command_group: Optional[_SubParsersAction] = None
    ) -> ArgumentParser:
        parser: ArgumentParser
        desc = """Extracts a single file, by game path, from an .arh/.ard archive."""
        if command_group is None:
            parser = RelicArgParser("extract-file", description=desc)
        else:
            parser = command_group.add_parser("extract-file", description=desc)

        _add_common_arguments(
            parser, "Output Directory (default: 'extracted' next to the .arh file)"
        )
        parser.add_argument("game_path", type=str, help="Game file to extract")
        _add_unwrap_argument(parser)
        return parser

    def command(self, ns: Namespace, *, logger: Logger) -> Optional[int]:
        infile: str = ns.src_arh
        game_path: str = ns.game_path
        outdir: str = ns.output or _default_output_dir(infile)

        extractor = _open(ns, logger)
        if extractor is None:
            return _FAILURE

        outfile = os.path.join(outdir, game_path.replace("\\", "/").lstrip("/"))
        with extractor:
            try:
                found = extractor.extract(game_path, outfile)
            except ArhError as e:
                logger.error(BraceMessage("Failed to extract `{0}`; {1}", outfile, e))
                return _FAILURE
            if not found:
                logger.error("Failed to extract, file likely does not exist in archive.")
                return _FAILURE

        logger.info(BraceMessage("File extracted to `{0}`.", outfile))
        return _SUCCESS


class RelicArhExtractHashCli(CliPlugin):
    def _create_parser(
        self, command_group: Optional[_SubParsersAction] = None
    ) -> ArgumentParser:
        parser: ArgumentParser
        desc = """Extracts a single file, by hash, from an .arh/.ard archive.
            The hash is 16 hexadecimal digits, optionally prefixed by '0x'. Example: DA7EB7B09B34DD80"""
        if command_group is None:
            parser = RelicArgParser("extract-hash", description=desc)
        else:
            parser = command_group.add_parser("extract-hash", description=desc)

        _add_common_arguments(
            parser, "Output Directory (default: 'extracted' next to the .arh file)"
        )
        parser.add_argument("hash", type=str, help="Hash to extract")
        _add_unwrap_argument(parser)
        return parser

    def command(self, ns: Namespace, *, logger: Logger) -> Optional[int]:
        infile: str = ns.src_arh
        outdir: str = ns.output or _default_output_dir(infile)

        try:
            value = parse_hash(ns.hash)
        except ValueError as e:
            logger.error(str(e))
            return _FAILURE

        extractor = _open(ns, logger)
        if extractor is None:
            return _FAILURE

        outfile = os.path.join(outdir, f"{format_hash(value)}.bin")
        with extractor:
            try:
                found = extractor.extract(value, outfile)
            except ArhError as e:
                logger.error(BraceMessage("Failed to extract `{0}`; {1}", outfile, e))
                return _FAILURE
            if not found:
                logger.error("Failed to extract, file likely does not exist in archive.")
                return _FAILURE

        logger.info(BraceMessage("File extracted to `{0}`.", outfile))
        return _SUCCESS


class RelicArhHashListCli(CliPlugin):
    def _create_parser(
        self, command_group: Optional[_SubParsersAction] = None
    ) -> ArgumentParser:
        parser: ArgumentParser
        desc = """Produces a hash list ('HASH|path' per line) with the known paths of an .arh/.ard archive."""
        if command_group is None:
            parser = RelicArgParser("hash-list", description=desc)
        else:
            parser = command_group.add_parser("hash-list", description=desc)

        _add_common_arguments(
            parser, f"Output File (default: '{HASH_LIST_NAME}' next to the .arh file)"
        )
        return parser

    def command(self, ns: Namespace, *, logger: Logger) -> Optional[int]:
        infile: str = ns.src_arh
        outfile: str = ns.output or os.path.join(
            os.path.dirname(os.path.abspath(infile)), HASH_LIST_NAME
        )

        extractor = _open(ns, logger)
        if extractor is None:
            return _FAILURE

        outfile_dir = os.path.dirname(os.path.abspath(outfile))
        os.makedirs(outfile_dir, exist_ok=True)
        with extractor:
            with open(outfile, "w", encoding="utf-8", newline="\n") as writer:
                count = extractor.build_hash_list(writer)

        logger.info(BraceMessage("Hash list ({0} entries) exported at `{1}`.", count, outfile))
        return _SUCCESS
