"""Frame number extraction from image filenames."""

import re
from dataclasses import dataclass
from typing import Optional

_EXTENSION = re.compile(r"\.[^/.]+$")

# Tried in order. The first prefers multi-digit suffixes with an optional
# separator ("shot0012", "shot_0012"); the second accepts single digits but
# only after an explicit separator ("shot_1").
FRAME_PATTERNS = [
    re.compile(r"^(.+?)[-_]?([0-9]{2,})$"),
    re.compile(r"^(.+?)[-_]([0-9]+)$"),
]


@dataclass(frozen=True)
class FrameInfo:
    """Result of parsing a filename."""

    base_name: str
    frame_number: Optional[int] = None

    @property
    def has_frame(self) -> bool:
        return self.frame_number is not None


def strip_extension(filename: str) -> str:
    """Remove the final extension from a filename, keeping the rest as-is."""
    return _EXTENSION.sub("", filename)


def parse_frame_name(filename: str) -> FrameInfo:
    """Split a filename into its base name and frame number.

    Leading zeros are dropped: ``shot_0007.png`` parses to ``("shot", 7)``.
    Names without a trailing numeric component get ``frame_number=None``.

    Args:
        filename: File name, with or without extension

    Returns:
        FrameInfo for the name
    """
    stem = strip_extension(filename)

    for pattern in FRAME_PATTERNS:
        match = pattern.match(stem)
        if match:
            return FrameInfo(match.group(1), int(match.group(2), 10))

    return FrameInfo(stem, None)
