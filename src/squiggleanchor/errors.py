"""Error kinds raised while building region input.

Every failure of a region build is fatal; callers get one of the classes
below and never a partial :class:`~squiggleanchor.models.RegionInput`.
Sparse coverage is not an error and is represented by unset anchors.
"""

from __future__ import annotations

from typing import Optional


class AnchorError(RuntimeError):
    """Base class for anchor construction failures."""

    def __init__(self, message: str, *, region: Optional[str] = None) -> None:
        if region is not None:
            message = f"{message} (region {region})"
        super().__init__(message)
        self.region = region


class RegionPreconditionError(AnchorError):
    """Inputs cannot be opened, are not indexed, or the region is unusable."""


class ReadNotFoundError(RegionPreconditionError):
    """A read name has no raw-signal file in the read map."""

    def __init__(self, read_name: str, *, region: Optional[str] = None) -> None:
        super().__init__(f"Read '{read_name}' not found in read map", region=region)
        self.read_name = read_name


class AnchorInvariantError(AnchorError):
    """Per-read anchor sets disagree in shape."""


class UnsupportedCigarError(AnchorError):
    """The alignment record uses an edit operation we cannot walk."""


class EventLookupError(AnchorError):
    """No event could be found for a base coordinate that should be mapped."""
