#!/usr/bin/env python3
"""
ByteCat

A byte-exact Python reimplementation of the classic cat utility: concatenate
files (or standard input) to standard output, optionally numbering lines,
squeezing blank lines and making ends, tabs and non-printing bytes visible.
"""

import argparse
import contextlib
import logging
import os
import sys
from dataclasses import dataclass
from typing import BinaryIO, ContextManager, Iterator, List, Optional, Sequence

from tqdm import tqdm

# Define version
__version__ = "1.0.0"
__author__ = "tboy1337"

# Source name that binds to the process's standard input
STDIN_TOKEN = "-"

# Size of the raw reads used when no formatting is requested
CHUNK_SIZE = 65536

LINE_FEED = 0x0A
TAB = 0x09

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Set up logging; diagnostics go to standard error, never standard output
logging.basicConfig(
    level=logging.WARNING,
    format=LOG_FORMAT,
    handlers=[logging.StreamHandler()],
)
logger = logging.getLogger("ByteCat")


class ByteCatError(Exception):
    """Base class for errors that abort a run."""


class SourceOpenError(ByteCatError):
    """A source could not be opened."""

    def __init__(self, source: str, cause: OSError) -> None:
        self.source = source
        self.cause = cause
        super().__init__(f"{source}: {cause.strerror or cause}")


class SourceReadError(ByteCatError):
    """Reading from an already opened source failed."""

    def __init__(self, source: str, cause: OSError) -> None:
        self.source = source
        self.cause = cause
        super().__init__(f"{source}: read error: {cause.strerror or cause}")


@dataclass(frozen=True)
class Options:
    """Canonical set of active transformations, fixed for a whole run."""

    number_nonblank: bool = False
    number: bool = False
    show_ends: bool = False
    squeeze_blank: bool = False
    show_tabs: bool = False
    show_non_printing: bool = False

    @property
    def needs_formatting(self) -> bool:
        return (
            self.number_nonblank
            or self.number
            or self.show_ends
            or self.squeeze_blank
            or self.show_tabs
            or self.show_non_printing
        )


@dataclass
class FormatterState:
    """Counters carried from line to line and from source to source."""

    line_number: int = 1
    consecutive_blank_count: int = 0


def resolve_options(  # pylint: disable=too-many-arguments
    *,
    show_all: bool = False,
    number_nonblank: bool = False,
    e: bool = False,
    show_ends: bool = False,
    number: bool = False,
    squeeze_blank: bool = False,
    t: bool = False,
    show_tabs: bool = False,
    show_non_printing: bool = False,
) -> Options:
    """
    Turn raw command line flags into the canonical Options.

    ``e`` is the historical alias for show-ends plus show-non-printing and
    ``t`` the alias for show-non-printing plus show-tabs. Nonblank numbering
    always wins over numbering of every line, whatever the flag order.
    """
    if e:
        show_ends = True
        show_non_printing = True

    if t:
        show_non_printing = True
        show_tabs = True

    if show_all:
        show_ends = True
        show_non_printing = True
        show_tabs = True

    if number_nonblank:
        number = False

    return Options(
        number_nonblank=number_nonblank,
        number=number,
        show_ends=show_ends,
        squeeze_blank=squeeze_blank,
        show_tabs=show_tabs,
        show_non_printing=show_non_printing,
    )


def options_from_args(args: argparse.Namespace) -> Options:
    """Build Options from a namespace produced by build_parser()."""
    return resolve_options(
        show_all=args.show_all,
        number_nonblank=args.number_nonblank,
        e=args.e,
        show_ends=args.show_ends,
        number=args.number,
        squeeze_blank=args.squeeze_blank,
        t=args.t,
        show_tabs=args.show_tabs,
        show_non_printing=args.show_non_printing,
    )


def _non_printing_notation(c: int) -> bytes:
    if c < 32 and c not in (LINE_FEED, TAB):
        return bytes([ord("^"), c + 64])
    if c == 127:
        return b"^?"
    if c > 127:
        low = c - 128
        if low < 32 and low != LINE_FEED:
            return b"M-^" + bytes([low + 64])
        if low == 127:
            return b"M-^?"
        return b"M-" + bytes([low])
    return bytes([c])


# Lookup table indexed by byte value
_NON_PRINTING_TABLE: List[bytes] = [_non_printing_notation(c) for c in range(256)]


def insert_end_marker(line: bytes) -> bytes:
    """Insert '$' right before the line feed; unterminated lines are unchanged."""
    if line.endswith(b"\n"):
        return line[:-1] + b"$\n"
    return line


def escape_non_printing(line: bytes) -> bytes:
    """Render control and high-bit bytes in ^X, M-X and M-^X notation."""
    return b"".join(_NON_PRINTING_TABLE[c] for c in line)


def escape_tabs(line: bytes) -> bytes:
    """Render every tab byte as ^I."""
    return line.replace(b"\t", b"^I")


def is_blank_line(line: bytes) -> bool:
    return line == b"\n"


def format_line(line: bytes, options: Options, state: FormatterState) -> bytes:
    """
    Produce the output bytes for one raw line and advance the state.

    Squeezing is decided first so that a dropped line neither consumes a line
    number nor gets escaped. The end marker goes in before any escaping and
    the line number is prepended last, so it is never escaped itself.
    Returns b"" for a squeezed line.
    """
    blank = is_blank_line(line)

    if options.squeeze_blank:
        if blank:
            state.consecutive_blank_count += 1
            if state.consecutive_blank_count > 1:
                return b""
        else:
            state.consecutive_blank_count = 0

    if options.show_ends:
        line = insert_end_marker(line)

    if options.show_non_printing:
        line = escape_non_printing(line)

    if options.show_tabs:
        line = escape_tabs(line)

    if options.number or (options.number_nonblank and not blank):
        line = b"%d " % state.line_number + line
        state.line_number += 1

    return line


def open_source(source: str, stdin: BinaryIO) -> ContextManager[BinaryIO]:
    """
    Open one source for binary reading.

    Standard input is handed out as-is and left open, so a later "-" keeps
    reading the same channel. Files are closed when the context exits.
    """
    if source == STDIN_TOKEN:
        return contextlib.nullcontext(stdin)
    try:
        return open(source, "rb")  # pylint: disable=consider-using-with
    except OSError as e:
        raise SourceOpenError(source, e) from e


def iter_lines(stream: BinaryIO) -> Iterator[bytes]:
    """Yield line-feed terminated chunks; the last one may lack the terminator."""
    while True:
        line = stream.readline()
        if not line:
            return
        yield line


def _iter_chunks(stream: BinaryIO) -> Iterator[bytes]:
    read = getattr(stream, "read1", stream.read)
    while True:
        chunk = read(CHUNK_SIZE)
        if not chunk:
            return
        yield chunk


def cat_source(  # pylint: disable=too-many-arguments
    source: str,
    options: Options,
    state: FormatterState,
    output: BinaryIO,
    stdin: BinaryIO,
    progress: Optional[tqdm] = None,
) -> int:
    """Copy one source to output, formatting it if any option is active.

    Returns the number of bytes read from the source.
    """
    bytes_read = 0
    bytes_written = 0
    with open_source(source, stdin) as stream:
        chunks = iter_lines(stream) if options.needs_formatting else _iter_chunks(stream)
        while True:
            try:
                chunk = next(chunks)
            except StopIteration:
                break
            except OSError as e:
                raise SourceReadError(source, e) from e

            bytes_read += len(chunk)
            if progress is not None:
                progress.update(len(chunk))

            if options.needs_formatting:
                chunk = format_line(chunk, options, state)
            output.write(chunk)
            bytes_written += len(chunk)

    logger.debug(
        "Finished %s (%d bytes read, %d bytes written)",
        source,
        bytes_read,
        bytes_written,
    )
    return bytes_read


def _known_total(sources: Sequence[str]) -> Optional[int]:
    # Only meaningful when every source is a regular file
    total = 0
    for source in sources:
        if source == STDIN_TOKEN or not os.path.isfile(source):
            return None
        total += os.path.getsize(source)
    return total


def cat_sources(
    sources: Sequence[str],
    options: Options,
    output: Optional[BinaryIO] = None,
    stdin: Optional[BinaryIO] = None,
    show_progress: bool = False,
) -> FormatterState:
    """
    Concatenate every source, in order, to output.

    A single FormatterState is threaded through all sources so numbering and
    blank squeezing never restart at a source boundary. The first source that
    fails to open or read aborts the run.
    """
    if output is None:
        output = sys.stdout.buffer
    if stdin is None:
        stdin = sys.stdin.buffer

    state = FormatterState()
    total: Optional[int] = _known_total(sources) if show_progress else None

    with tqdm(
        total=total,
        unit="B",
        unit_scale=True,
        file=sys.stderr,
        disable=not show_progress,
    ) as pbar:
        try:
            for source in sources:
                pbar.set_description(source)
                cat_source(source, options, state, output, stdin, progress=pbar)
        finally:
            output.flush()

    return state


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bytecat",
        description="Concatenate FILE(s) to standard output.\n\n"
        "With no FILE, or when FILE is -, read standard input.",
        epilog="Examples:\n"
        "  bytecat f - g  Output f's contents, then standard input, then g's contents.\n"
        "  bytecat        Copy standard input to standard output.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-A", "--show-all", action="store_true", help="equivalent to -vET"
    )
    parser.add_argument(
        "-b",
        "--number-nonblank",
        action="store_true",
        help="number nonempty output lines, overrides -n",
    )
    parser.add_argument("-e", action="store_true", help="equivalent to -vE")
    parser.add_argument(
        "-E", "--show-ends", action="store_true", help="display $ at end of each line"
    )
    parser.add_argument(
        "-n", "--number", action="store_true", help="number all output lines"
    )
    parser.add_argument(
        "-s",
        "--squeeze-blank",
        action="store_true",
        help="suppress repeated empty output lines",
    )
    parser.add_argument("-t", action="store_true", help="equivalent to -vT")
    parser.add_argument(
        "-T", "--show-tabs", action="store_true", help="display TAB characters as ^I"
    )
    parser.add_argument("-u", action="store_true", help="(ignored)")
    parser.add_argument(
        "-v",
        "--show-non-printing",
        "--show-nonprinting",
        dest="show_non_printing",
        action="store_true",
        help="use ^ and M- notation, except for LFD and TAB",
    )
    parser.add_argument(
        "--progress",
        action="store_true",
        help="show a progress bar on standard error",
    )
    parser.add_argument(
        "--verbose", action="store_true", help="Enable verbose logging"
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also append log messages to this file",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"ByteCat v{__version__}",
        help="Show program version and exit",
    )
    parser.add_argument(
        "files",
        nargs="*",
        default=None,
        metavar="FILE",
        help="files to concatenate (default: standard input)",
    )
    return parser


def parse_command_line(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse flags and files given in any order.

    Everything after the first "--" is a file name, even if it looks like a
    flag. With no file at all, standard input is read.
    """
    if argv is None:
        argv = sys.argv[1:]
    argv = list(argv)

    trailing: List[str] = []
    if "--" in argv:
        split = argv.index("--")
        argv, trailing = argv[:split], argv[split + 1 :]

    args = build_parser().parse_intermixed_args(argv)
    args.files = (args.files or []) + trailing
    if not args.files:
        args.files = [STDIN_TOKEN]
    return args


def main(argv: Optional[List[str]] = None) -> int:  # pylint: disable=too-many-return-statements
    file_handler: Optional[logging.FileHandler] = None
    try:
        args = parse_command_line(argv)

        # Set logging level based on verbosity
        if args.verbose:
            logger.setLevel(logging.DEBUG)

        if args.log_file:
            file_handler = logging.FileHandler(args.log_file, mode="a")
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
            logger.addHandler(file_handler)

        options = options_from_args(args)
        logger.debug("ByteCat v%s", __version__)
        logger.debug("Sources: %s", " ".join(args.files))
        logger.debug("Resolved options: %s", options)

        state = cat_sources(args.files, options, show_progress=args.progress)

        if options.number or options.number_nonblank:
            logger.debug("Numbered %d lines", state.line_number - 1)
        return 0
    except ByteCatError as e:
        logger.error("%s", e)
        return 1
    except BrokenPipeError:
        # Point stdout at devnull so the interpreter's final flush stays quiet
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
        os.close(devnull)
        return 141
    except KeyboardInterrupt:
        logger.info("Operation cancelled by user.")
        return 130
    except Exception as e:  # pylint: disable=broad-exception-caught
        logger.error("An unexpected error occurred: %s", str(e))
        if logger.level <= logging.DEBUG:
            import traceback  # pylint: disable=import-outside-toplevel

            logger.debug("Traceback: %s", traceback.format_exc())
        return 1
    finally:
        if file_handler is not None:
            logger.removeHandler(file_handler)
            file_handler.close()


if __name__ == "__main__":
    sys.exit(main())
