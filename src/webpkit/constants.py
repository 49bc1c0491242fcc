"""Centralized constants for webpkit."""

# ITU-R BT.601 luma weights
LUMA_WEIGHT_R = 0.299
LUMA_WEIGHT_G = 0.587
LUMA_WEIGHT_B = 0.114

# Below this luminance a pixel is treated as black and shifted instead of scaled
NEAR_BLACK_LUMINANCE = 0.001

# Sequence detection
DEFAULT_MAX_FRAME_GAP = 5

# Supported Formats
SUPPORTED_INPUT_EXTENSIONS = {
    "png",
    "jpg",
    "jpeg",
    "webp",
    "gif",
    "bmp",
    "tif",
    "tiff",
}
DEFAULT_OUTPUT_FORMAT = "webp"
OUTPUT_FORMAT_EXTENSIONS = {
    "webp": "webp",
    "png": "png",
    "jpeg": "jpg",
    "jpg": "jpg",
}
# Output formats whose encoder takes a quality setting, mapped to the
# compression name OIIO expects ("jpg" is not recognised)
QUALITY_CODECS = {"webp": "webp", "jpeg": "jpeg", "jpg": "jpeg"}

# Resampling
DEFAULT_RESIZE_FILTER = "lanczos3"

# Packaging
BATCH_ARCHIVE_NAME = "webp-converted.zip"

# Logging
LOG_FILE_NAME = "webpkit.log"
LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 3
