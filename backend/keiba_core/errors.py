from __future__ import annotations


class SourceFetchError(RuntimeError):
    """A scrape or cache read could not be completed."""


class BackendWriteError(RuntimeError):
    """A calendar or cache write could not be completed."""
