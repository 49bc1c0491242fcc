"""Sequence detection and grouping for numbered image files."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Optional

from webpkit.constants import DEFAULT_MAX_FRAME_GAP
from webpkit.core.frame_parser import parse_frame_name
from webpkit.io.raw_file import RawFile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceImage:
    """An input file together with its parsed frame information."""

    id: str
    name: str
    base_name: str
    frame_number: Optional[int]
    original_byte_size: int
    raw_file: RawFile = field(repr=False, compare=False)

    def read(self) -> bytes:
        """Return the original encoded bytes."""
        return self.raw_file.read()


def _frame_sort_key(image: SourceImage) -> tuple[bool, int]:
    # Images without a frame number sort after every numbered frame
    return (image.frame_number is None, image.frame_number or 0)


def _name_sort_key(name: str) -> tuple[str, str]:
    # Case-insensitive order; on a tie lowercase comes first ("a" < "A")
    return (name.casefold(), name.swapcase())


class ImageSequence:
    """A group of images displayed and packaged together."""

    def __init__(
        self,
        sequence_id: str,
        base_name: str,
        images: list[SourceImage],
        is_sequence: bool,
        missing_frames: Optional[list[int]] = None,
    ) -> None:
        """Initialize an image sequence.

        Args:
            sequence_id: Identifier, unique within one detection batch
            base_name: Display name, possibly suffixed with a part index
            images: Member images; stored in ascending frame order
            is_sequence: False for a lone image
            missing_frames: Frame numbers absent between the first and last frame
        """
        self.id = sequence_id
        self.base_name = base_name
        self.images = sorted(images, key=_frame_sort_key)
        self.is_sequence = is_sequence
        self.missing_frames = list(missing_frames or [])
        self.total_original_size = sum(img.original_byte_size for img in self.images)
        self.total_converted_size = 0

    @property
    def frame_numbers(self) -> list[int]:
        """Frame numbers of the members that carry one, ascending."""
        return [img.frame_number for img in self.images if img.frame_number is not None]

    @property
    def frame_range(self) -> Optional[tuple[int, int]]:
        """First and last frame number, or None when no member is numbered."""
        frames = self.frame_numbers
        if not frames:
            return None
        return frames[0], frames[-1]

    def record_converted(self, byte_size: int) -> None:
        """Add the encoded size of a member that finished converting."""
        self.total_converted_size += byte_size

    def __len__(self) -> int:
        """Return the number of images in the sequence."""
        return len(self.images)

    def __repr__(self) -> str:
        """Return string representation."""
        frame_range = self.frame_range
        range_str = f"[{frame_range[0]}-{frame_range[1]}]" if frame_range else "[]"
        return (
            f"ImageSequence(base_name={self.base_name}, "
            f"images={len(self.images)}, "
            f"range={range_str}, "
            f"missing={len(self.missing_frames)})"
        )


class SequenceDetector:
    """Groups input files into frame sequences and lone images."""

    @staticmethod
    def detect(
        files: Iterable[RawFile], max_gap: int = DEFAULT_MAX_FRAME_GAP
    ) -> list[ImageSequence]:
        """Detect frame sequences in a batch of files.

        Files are bucketed by case-insensitive base name. A bucket with at
        least two members, some of them numbered, is split wherever
        consecutive frame numbers differ by more than ``max_gap``. Every
        resulting group of two or more images becomes a sequence; all other
        images become singles.

        Args:
            files: Input files
            max_gap: Largest frame difference that keeps two frames together

        Returns:
            Sequences first, then singles, each ordered by display name
        """
        images = SequenceDetector.create_source_images(files)

        buckets: dict[str, list[SourceImage]] = {}
        display_names: dict[str, str] = {}
        for image in images:
            key = image.base_name.lower()
            buckets.setdefault(key, []).append(image)
            display_names.setdefault(key, image.base_name)

        sequences: list[ImageSequence] = []
        for key, members in buckets.items():
            numbered = [img for img in members if img.frame_number is not None]
            if len(members) < 2 or not numbered:
                sequences.extend(SequenceDetector._single(img) for img in members)
                continue

            groups = SequenceDetector.split_by_gaps(numbered, max_gap)
            for index, group in enumerate(groups):
                if len(group) < 2:
                    sequences.append(SequenceDetector._single(group[0]))
                    continue

                base_name = display_names[key]
                if len(groups) > 1:
                    base_name = f"{base_name} (Part {index + 1})"

                sequences.append(
                    ImageSequence(
                        f"seq-{key}-{index}",
                        base_name,
                        group,
                        is_sequence=True,
                        missing_frames=SequenceDetector.find_missing_frames(
                            [img.frame_number for img in group]
                        ),
                    )
                )

            unnumbered = [img for img in members if img.frame_number is None]
            if unnumbered:
                logger.debug(
                    f"{len(unnumbered)} file(s) named like sequence '{display_names[key]}' "
                    f"carry no frame number; keeping them as single images"
                )
                sequences.extend(SequenceDetector._single(img) for img in unnumbered)

        sequences.sort(key=lambda seq: (not seq.is_sequence, _name_sort_key(seq.base_name)))

        logger.debug(
            f"Detected {sum(1 for s in sequences if s.is_sequence)} sequence(s) and "
            f"{sum(1 for s in sequences if not s.is_sequence)} single image(s) "
            f"from {len(images)} file(s)"
        )
        return sequences

    @staticmethod
    def create_source_images(files: Iterable[RawFile]) -> list[SourceImage]:
        """Parse every file and give it a stable identifier."""
        images: list[SourceImage] = []
        for index, raw_file in enumerate(files):
            info = parse_frame_name(raw_file.name)
            images.append(
                SourceImage(
                    id=f"{raw_file.name}-{index}",
                    name=raw_file.name,
                    base_name=info.base_name,
                    frame_number=info.frame_number,
                    original_byte_size=raw_file.byte_size,
                    raw_file=raw_file,
                )
            )
        return images

    @staticmethod
    def split_by_gaps(
        images: list[SourceImage], max_gap: int = DEFAULT_MAX_FRAME_GAP
    ) -> list[list[SourceImage]]:
        """Split images into runs of nearby frame numbers.

        A difference greater than ``max_gap`` between consecutive frames
        starts a new group. Images without a frame number sort last and
        always start a new group.

        Args:
            images: Images to split
            max_gap: Largest difference that keeps two frames together

        Returns:
            Groups in ascending frame order
        """
        if not images:
            return []

        ordered = sorted(images, key=_frame_sort_key)
        groups: list[list[SourceImage]] = [[ordered[0]]]

        for prev, curr in zip(ordered, ordered[1:]):
            if (
                prev.frame_number is None
                or curr.frame_number is None
                or curr.frame_number - prev.frame_number > max_gap
            ):
                groups.append([curr])
            else:
                groups[-1].append(curr)

        return groups

    @staticmethod
    def find_missing_frames(frame_numbers: list[int]) -> list[int]:
        """Return every frame strictly between consecutive present frames.

        Args:
            frame_numbers: Present frame numbers, in any order

        Returns:
            Missing frame numbers, ascending
        """
        if len(frame_numbers) < 2:
            return []

        ordered = sorted(frame_numbers)
        missing: list[int] = []
        for prev, curr in zip(ordered, ordered[1:]):
            missing.extend(range(prev + 1, curr))
        return missing

    @staticmethod
    def _single(image: SourceImage) -> ImageSequence:
        return ImageSequence(
            f"single-{image.id}",
            image.base_name,
            [image],
            is_sequence=False,
        )
