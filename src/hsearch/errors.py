"""Operational errors that end an hsearch run with a non-zero exit status."""

from __future__ import annotations


class HsearchError(Exception):
    """Base class for fatal errors reported on stderr by the CLI."""


class LoadError(HsearchError):
    """The history source is missing, unreadable or unparsable."""


class TerminalError(HsearchError):
    """No interactive terminal is available for the search session."""


class WriteError(HsearchError):
    """The accepted command could not be written to the destination."""
