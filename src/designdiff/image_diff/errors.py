from __future__ import annotations


class DiffError(Exception):
    message = "Failed to generate diff"

    def __init__(self, reason: str | None = None) -> None:
        self.reason = reason
        super().__init__(f"{self.message}: {reason}" if reason else self.message)


class InvalidImage(DiffError):
    """One or both inputs could not be decoded into a raster image."""

    message = "Could not process one or more images"


class ProcessingFailed(DiffError):
    """Internal failure while building the diff output."""

    message = "Failed to generate diff image"
