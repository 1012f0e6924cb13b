"""Core utilities -- re-exports all public symbols for convenience."""

from .io import FileByteSource, decode_image, save_image
from .paths import normalize_subfolder, resolve_asset_path, export_path
from .logging import setup_logging

__all__ = [
    "FileByteSource", "decode_image", "save_image",
    "normalize_subfolder", "resolve_asset_path", "export_path",
    "setup_logging",
]
