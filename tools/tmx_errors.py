#!/usr/bin/env python3
"""
tmx_errors.py - Error types shared by tmx_parser.py, tile_render.py and tmxc.py.
"""

from __future__ import annotations

import os


class TmxError(Exception):
    category = "error"

    def __init__(self, path: str, message: str, line: int = 1, col: int = 1):
        super().__init__(message)
        self.path = path
        self.line = line
        self.col = col
        self.message = message

    def display_path(self) -> str:
        if self.path.startswith("<"):
            return self.path
        # Undecodable file names come back with lone surrogates; keep them printable.
        return os.path.abspath(self.path).encode("utf-8", "backslashreplace").decode("utf-8")

    def diagnostic(self) -> str:
        return f"{self.display_path()}:{self.line}:{self.col}: error: {self.category}: {self.message}"


class TmxUsageError(TmxError):
    category = "usage"


class TmxIOError(TmxError):
    category = "io"


class TmxParseError(TmxError):
    category = "parse"


class TmxSchemaError(TmxError):
    category = "schema"


class TmxTemplateError(TmxError):
    category = "template"
