"""I/O modules for input files, rasterization and output packaging."""

from webpkit.io.raw_file import RawFile
from webpkit.io.file_utils import FileUtils
from webpkit.io.rasterizer import OIIORasterizer, PixelBuffer, Rasterizer

__all__ = ["RawFile", "FileUtils", "OIIORasterizer", "PixelBuffer", "Rasterizer"]
