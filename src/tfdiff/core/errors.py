"""
Exception classes for tfdiff.

ParseError aborts a comparison because one of the documents is not valid
configuration source. SourceError means a document could not be obtained at
all. Both are reported distinctly by the CLI.
"""

from typing import Optional


class TfDiffError(Exception):
    """Base exception for all tfdiff errors."""


class ParseError(TfDiffError):
    """Malformed configuration syntax in a document."""

    def __init__(self, message: str, source: Optional[str] = None,
                 line: Optional[int] = None, column: Optional[int] = None):
        self.message = message
        self.source = source
        self.line = line
        self.column = column

        location = ""
        if source:
            location = f"{source}:"
        if line is not None:
            location += f"{line}:"
            if column is not None:
                location += f"{column}:"
        if location:
            location = location.rstrip(":") + " "

        super().__init__(f"{location}{message}")


class SourceError(TfDiffError):
    """A revision source failed to produce its documents."""


class ConfigError(TfDiffError):
    """Invalid settings file or option value."""
