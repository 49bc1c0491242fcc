"""Writing converted images to disk, individually or as zip archives."""

import logging
import zipfile
from collections.abc import Iterable
from pathlib import Path
from typing import Optional

from webpkit import constants
from webpkit.core.converter import ImageResult, ImageStatus, SequenceResult
from webpkit.io.file_utils import FileUtils

logger = logging.getLogger(__name__)


def _completed(images: Iterable[ImageResult]) -> list[ImageResult]:
    return [img for img in images if img.status == ImageStatus.DONE and img.encoded_bytes]


class OutputPackager:
    """Packages completed conversions. Failed and pending images are skipped."""

    @staticmethod
    def write_images(
        images: Iterable[ImageResult], directory: Path, overwrite: bool = False
    ) -> list[Path]:
        """Write each completed image under its output filename.

        Args:
            images: Image results
            directory: Destination directory
            overwrite: Replace existing files

        Returns:
            Paths written
        """
        written: list[Path] = []
        for image in _completed(images):
            target = directory / image.output_name
            if not FileUtils.validate_output_path(target, overwrite=overwrite):
                continue
            target.write_bytes(image.encoded_bytes)
            written.append(target)
        return written

    @staticmethod
    def write_sequence_archive(
        sequence: SequenceResult, directory: Path, overwrite: bool = False
    ) -> Optional[Path]:
        """Package one sequence.

        A single completed image is written as a plain file; several go into
        ``<base_name>.zip``.

        Returns:
            Path written, or None when nothing in the sequence completed
        """
        completed = _completed(sequence.images)
        if not completed:
            return None

        if len(completed) == 1:
            written = OutputPackager.write_images(completed, directory, overwrite=overwrite)
            return written[0] if written else None

        archive_path = directory / f"{sequence.base_name}.zip"
        if not FileUtils.validate_output_path(archive_path, overwrite=overwrite):
            return None

        with zipfile.ZipFile(archive_path, "w", compression=zipfile.ZIP_STORED) as archive:
            for image in completed:
                archive.writestr(image.output_name, image.encoded_bytes)

        logger.info(f"Wrote {len(completed)} image(s) to {archive_path}")
        return archive_path

    @staticmethod
    def write_batch_archive(
        sequences: list[SequenceResult],
        path: Optional[Path] = None,
        directory: Optional[Path] = None,
        overwrite: bool = False,
    ) -> Optional[Path]:
        """Package every completed image of a batch into one archive.

        With more than one sequence each gets its own folder named after its
        base name.

        Args:
            sequences: Sequence results
            path: Archive path (defaults to ``webp-converted.zip`` in ``directory``)
            directory: Used when ``path`` is omitted (defaults to the cwd)
            overwrite: Replace an existing archive

        Returns:
            Archive path, or None if it could not be written
        """
        if path is None:
            path = (directory or Path.cwd()) / constants.BATCH_ARCHIVE_NAME
        if not FileUtils.validate_output_path(path, overwrite=overwrite):
            return None

        use_folders = len(sequences) > 1
        seen: set[str] = set()
        with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_STORED) as archive:
            for sequence in sequences:
                for image in _completed(sequence.images):
                    arcname = image.output_name
                    if use_folders:
                        arcname = f"{sequence.base_name}/{arcname}"
                    if arcname in seen:
                        logger.warning(f"Skipping duplicate archive entry: {arcname}")
                        continue
                    seen.add(arcname)
                    archive.writestr(arcname, image.encoded_bytes)

        logger.info(f"Wrote {len(seen)} image(s) to {path}")
        return path
