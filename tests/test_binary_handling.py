#!/usr/bin/env python3
"""
Test binary content handling for bytecat.py.
"""

import io
import logging
import os
import shutil
import sys
import tempfile
import unittest
from pathlib import Path

# Add parent directory to path to import bytecat module
sys.path.insert(0, str(Path(__file__).parent.parent))
import bytecat  # pylint: disable=wrong-import-position

# Disable logging for tests
bytecat.logger.setLevel(logging.CRITICAL)

ALL_BYTES = bytes(range(256))


class TestBinaryHandling(unittest.TestCase):
    def setUp(self) -> None:
        # Create a temporary directory
        self.test_dir = tempfile.mkdtemp()

        # Create a binary file
        self.binary_file = os.path.join(self.test_dir, "binary_file.bin")
        with open(self.binary_file, "wb") as f:
            f.write(b"\x00\x01\x02\x03\xff\xfe\xfd\xfc")

        # Create a PNG-like binary file
        self.png_file = os.path.join(self.test_dir, "image.png")
        with open(self.png_file, "wb") as f:
            f.write(b"\x89PNG\r\n\x1a\n\x00\x00\x00\x0dIHDR\x00\x00")

        # Every byte value, twice
        self.all_bytes_file = os.path.join(self.test_dir, "all_bytes.bin")
        with open(self.all_bytes_file, "wb") as f:
            f.write(ALL_BYTES * 2)

    def tearDown(self) -> None:
        # Clean up the temporary directory
        shutil.rmtree(self.test_dir)

    def cat(self, sources, options) -> bytes:
        output = io.BytesIO()
        bytecat.cat_sources(sources, options, output=output, stdin=io.BytesIO())
        return output.getvalue()

    def test_binary_passthrough(self) -> None:
        """Binary files are copied untouched when no option is set."""
        output = self.cat(
            [self.binary_file, self.png_file, self.all_bytes_file], bytecat.Options()
        )
        with open(self.binary_file, "rb") as f:
            expected = f.read()
        with open(self.png_file, "rb") as f:
            expected += f.read()
        self.assertEqual(output, expected + ALL_BYTES * 2)

    def test_binary_passthrough_equals_formatter(self) -> None:
        """The raw copy path and the per-line path agree byte for byte."""
        raw = self.cat([self.all_bytes_file, self.png_file], bytecat.Options())

        state = bytecat.FormatterState()
        formatted = b""
        for path in [self.all_bytes_file, self.png_file]:
            with open(path, "rb") as f:
                for line in bytecat.iter_lines(f):
                    formatted += bytecat.format_line(line, bytecat.Options(), state)

        self.assertEqual(raw, formatted)

    def test_binary_show_non_printing(self) -> None:
        """Control and meta bytes become visible."""
        output = self.cat(
            [self.binary_file], bytecat.resolve_options(show_non_printing=True)
        )
        self.assertEqual(output, b"^@^A^B^CM-^?M-~M-}M-|")

    def test_png_header_show_all(self) -> None:
        """The PNG signature under -A."""
        output = self.cat([self.png_file], bytecat.resolve_options(show_all=True))
        self.assertEqual(output, b"M-^IPNG^M$\n^Z$\n^@^@^@^MIHDR^@^@")

    def test_show_all_output_is_printable(self) -> None:
        """With -A the only non-printable byte left is the line feed."""
        output = self.cat(
            [self.all_bytes_file], bytecat.resolve_options(show_all=True)
        )
        for c in output:
            self.assertTrue(c == 0x0A or 32 <= c < 127, f"unexpected byte {c:#x}")

    def test_all_bytes_escape(self) -> None:
        """Spot check the escape of the full byte range."""
        escaped = bytecat.escape_non_printing(ALL_BYTES)
        self.assertTrue(escaped.startswith(b"^@^A^B^C^D^E^F^G^H\t\n^K^L^M"))
        self.assertIn(b"}~^?M-^@M-^A", escaped)
        self.assertTrue(escaped.endswith(b"M-}M-~M-^?"))


if __name__ == "__main__":
    unittest.main()
