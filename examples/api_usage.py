"""Example: Using the Python API programmatically."""

from pathlib import Path

from webpkit import WebPKit
from webpkit.core.config import ConversionSettingsBuilder, QualityPreset
from webpkit.io.packager import OutputPackager

kit = WebPKit()

# Inspect what was found before converting
sequences = kit.detect_sequences(["renders/"], recursive=True)
for sequence in sequences:
    print(sequence)

# Builder pattern: start from a preset, then override
settings = (
    ConversionSettingsBuilder()
    .with_preset(QualityPreset.WEB)
    .with_sharpen(40)
    .with_resize_width(1280)
    .build()
)

results = kit.convert_sequences(sequences, settings, max_workers=4)

output_dir = Path("output")
output_dir.mkdir(exist_ok=True)

# One zip per sequence, plain files for single images
for result in results:
    OutputPackager.write_sequence_archive(result, output_dir, overwrite=True)
    for failed in result.failed:
        print(f"{failed.name}: {failed.error_message}")
