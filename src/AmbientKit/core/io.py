"""Texture byte sources, decoding to numpy arrays, and PNG export."""

import logging
import os
import threading
from io import BytesIO
from pathlib import Path
from typing import Optional

import numpy as np
from PIL import Image

from ..errors import DecodeFailure
from .paths import resolve_asset_path

# Pillow's global decompression bomb check is replaced by the per-call
# max_pixels guard in decode_image().
Image.MAX_IMAGE_PIXELS = None

logger = logging.getLogger("ambient_materials.io")

_SIXTEEN_BIT_MODES = ("I;16", "I;16B", "I;16L", "I;16N")


class FileByteSource:
    """Read raw texture bytes from files under an asset root."""

    def __init__(self, asset_root: str):  # noqa: D107
        self.asset_root = str(asset_root)

    def resolve(self, rel_path: str) -> str:
        return resolve_asset_path(self.asset_root, rel_path)

    def exists(self, rel_path: str) -> bool:
        try:
            return os.path.isfile(self.resolve(rel_path))
        except ValueError as exc:
            logger.warning("Refusing to probe %s: %s", rel_path, exc)
            return False

    def read_bytes(self, rel_path: str) -> bytes:
        """Return file contents; raises FileNotFoundError when absent."""
        path = self.resolve(rel_path)
        with open(path, "rb") as f:
            data = f.read()
        logger.debug("Read %d bytes from %s", len(data), path)
        return data


def _gray_array(img: Image.Image) -> np.ndarray:
    """Single-channel samples; 8-bit stays uint8, deeper data becomes float32 [0, 1]."""
    if img.mode in _SIXTEEN_BIT_MODES:
        return np.asarray(img, dtype=np.float32) / 65535.0
    if img.mode == "I":
        arr = np.asarray(img, dtype=np.float32)
        bits = img.info.get("bits")
        if not isinstance(bits, int) or bits <= 0:
            bits = 16 if float(arr.max(initial=0.0)) > 255.0 else 8
        return np.clip(arr / float((1 << min(bits, 32)) - 1), 0.0, 1.0)
    if img.mode == "F":
        arr = np.asarray(img, dtype=np.float32)
        if float(arr.min(initial=0.0)) < 0.0 or float(arr.max(initial=0.0)) > 1.0:
            logger.warning("Float grayscale image outside [0, 1]; clipping.")
        return np.clip(arr, 0.0, 1.0)
    if img.mode == "L":
        return np.asarray(img, dtype=np.uint8)
    with img.convert("L") as converted:
        return np.asarray(converted, dtype=np.uint8)


def _color_array(img: Image.Image, channels: Optional[int]) -> np.ndarray:
    if channels is None:
        if img.mode in ("L", "RGB", "RGBA"):
            return np.asarray(img, dtype=np.uint8)
        channels = 4 if "A" in img.getbands() or img.mode == "P" else 3
    target = {2: "LA", 3: "RGB", 4: "RGBA"}.get(channels)
    if target is None:
        raise ValueError(f"Unsupported channel count: {channels}")
    if img.mode == target:
        return np.asarray(img, dtype=np.uint8)
    with img.convert(target) as converted:
        return np.asarray(converted, dtype=np.uint8)


def decode_image(data: bytes, expected_channels: Optional[int] = None,
                 max_pixels: int = 0, path: str = None) -> np.ndarray:
    """Decode encoded image bytes into a numpy array.

    ``expected_channels=1`` yields an HxW array (uint8, or float32 in [0, 1]
    for 16-bit and float sources). 2/3/4 yield HxWxC uint8. ``None`` keeps
    L/RGB/RGBA sources as they are.
    """
    if expected_channels not in (None, 1, 2, 3, 4):
        raise ValueError(f"expected_channels must be 1-4 or None, got {expected_channels}")
    if max_pixels < 0:
        raise ValueError("max_pixels must be >= 0 (0 = unlimited)")
    try:
        with Image.open(BytesIO(data)) as img:
            w, h = img.size
            if max_pixels > 0 and w * h > max_pixels:
                raise DecodeFailure(
                    f"Image too large: {w}x{h} = {w * h:,} pixels (max {max_pixels:,})",
                    path=path,
                )
            img.load()
            logger.debug("Decoding %s: mode=%s size=%dx%d", path or "<bytes>", img.mode, w, h)
            if expected_channels == 1:
                return _gray_array(img)
            return _color_array(img, expected_channels)
    except DecodeFailure:
        raise
    except (OSError, EOFError, ValueError, SyntaxError, Image.DecompressionBombError) as exc:
        raise DecodeFailure(f"Failed to decode image: {exc}", path=path) from exc


def save_image(arr: np.ndarray, path: str):
    """Save an HxW / HxWxC array as PNG atomically (temp file + ``os.replace``).

    uint8 data is written as-is; float data is clipped to [0, 1] and scaled.
    """
    if arr.size == 0 or arr.ndim < 2:
        raise ValueError(
            f"Cannot save empty or degenerate array (shape={arr.shape}) to {path}"
        )
    if arr.dtype != np.uint8:
        arr = np.round(np.clip(arr, 0.0, 1.0) * 255.0).astype(np.uint8)
    if arr.ndim == 3 and arr.shape[-1] == 1:
        arr = arr[:, :, 0]

    ext = Path(path).suffix.lower()
    if ext != ".png":
        raise ValueError(f"Only PNG export is supported, got '{ext or path}'")
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    # Keep the extension so Pillow can infer the format.
    tmp_path = f"{path}.tmp.{os.getpid()}.{threading.get_ident()}{ext}"
    try:
        with Image.fromarray(np.ascontiguousarray(arr)) as img:
            img.save(tmp_path, optimize=True)
        os.replace(tmp_path, path)
        logger.debug("Saved: %s (%s)", path, arr.shape)
    finally:
        if os.path.exists(tmp_path):
            try:
                os.remove(tmp_path)
            except OSError:
                pass
