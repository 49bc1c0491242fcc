"""Input discovery and output naming."""

import logging
from collections.abc import Iterable
from pathlib import Path

from webpkit import constants
from webpkit.core.frame_parser import strip_extension
from webpkit.io.raw_file import RawFile

logger = logging.getLogger(__name__)


class FileUtils:
    """Helpers for finding inputs and placing outputs."""

    @staticmethod
    def ensure_directory(path: Path) -> None:
        """Create ``path`` and any missing parents."""
        path.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def get_file_extension(path: Path) -> str:
        """Return the final suffix, lowercased and without the dot (``"PNG"`` -> ``"png"``)."""
        return path.suffix[1:].lower()

    @staticmethod
    def is_image_file(path: Path) -> bool:
        """Whether ``path`` has an extension the rasterizer is expected to decode."""
        return FileUtils.get_file_extension(path) in constants.SUPPORTED_INPUT_EXTENSIONS

    @staticmethod
    def get_output_filename(name: str, output_format: str = constants.DEFAULT_OUTPUT_FORMAT) -> str:
        """Replace a filename's extension with the output format's.

        ``Shot_0001.PNG`` becomes ``Shot_0001.webp``; the rest of the name
        keeps its case.

        Args:
            name: Original file name
            output_format: Target format name

        Returns:
            Suggested output file name
        """
        extension = constants.OUTPUT_FORMAT_EXTENSIONS.get(output_format.lower(), output_format)
        return f"{strip_extension(name)}.{extension}"

    @staticmethod
    def collect_files(paths: Iterable[Path], recursive: bool = False) -> list[RawFile]:
        """Expand files and directories into supported input files.

        Directories are scanned (recursively if requested) and filtered by
        extension; explicitly named files are always kept.

        Args:
            paths: Files and/or directories
            recursive: Whether to descend into subdirectories

        Returns:
            Input files in a stable order
        """
        collected: list[RawFile] = []
        for path in paths:
            path = Path(path)
            if path.is_dir():
                candidates = path.rglob("*") if recursive else path.iterdir()
                for candidate in sorted(candidates):
                    if candidate.is_file() and FileUtils.is_image_file(candidate):
                        collected.append(RawFile.from_path(candidate))
            elif path.is_file():
                collected.append(RawFile.from_path(path))
            else:
                logger.warning(f"Path does not exist: {path}")
        return collected

    @staticmethod
    def validate_output_path(path: Path, overwrite: bool = False) -> bool:
        """Prepare ``path`` for writing.

        Creates the parent directory. An existing file is only replaced when
        ``overwrite`` is set.

        Returns:
            False if an existing file blocks the write
        """
        if not overwrite and path.exists():
            logger.warning(f"Not replacing existing output: {path}")
            return False

        FileUtils.ensure_directory(path.parent)
        return True
