"""Input file handles with lazily read content."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional


@dataclass(frozen=True)
class RawFile:
    """A named input file whose bytes are read on demand."""

    name: str
    byte_size: int
    _loader: Callable[[], bytes] = field(repr=False, compare=False)
    path: Optional[Path] = None

    def read(self) -> bytes:
        """Return the file content."""
        return self._loader()

    @classmethod
    def from_path(cls, path: Path) -> "RawFile":
        """Create a handle backed by a file on disk."""
        path = Path(path)
        return cls(
            name=path.name,
            byte_size=path.stat().st_size,
            _loader=path.read_bytes,
            path=path,
        )

    @classmethod
    def from_bytes(cls, name: str, data: bytes) -> "RawFile":
        """Create a handle over an in-memory buffer."""
        return cls(name=name, byte_size=len(data), _loader=lambda: data)
