"""Combine roughness and metallic grayscale maps into one packed texture.

The 3-channel layout is ``[reserved, roughness, metallic]`` (green carries
roughness, blue carries metallic, red is a constant). The 2-channel layout
drops the reserved channel: ``[roughness, metallic]``.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple, Union

import numpy as np

from .errors import DimensionMismatch

logger = logging.getLogger("ambient_materials.packing")

ROUGHNESS = "roughness"
METALLIC = "metallic"
RESERVED = "reserved"

LAYOUTS = {
    3: (RESERVED, ROUGHNESS, METALLIC),
    2: (ROUGHNESS, METALLIC),
}

# Fully rough and non-metallic when a source map is missing.
DEFAULT_ROUGHNESS = 1.0
DEFAULT_METALLIC = 0.0
DEFAULT_RESERVED = 0.0


@dataclass
class ChannelBuffer:
    """Decoded single-channel samples (HxW, uint8 or float32) tagged with a role."""

    data: np.ndarray
    role: str

    def __post_init__(self) -> None:
        arr = np.asarray(self.data)
        if arr.ndim == 3 and arr.shape[-1] == 1:
            arr = arr[:, :, 0]
        if arr.ndim != 2:
            raise ValueError(
                f"{self.role} buffer must be HxW single-channel, got shape {arr.shape}"
            )
        if arr.dtype != np.uint8 and not np.issubdtype(arr.dtype, np.floating):
            raise ValueError(f"{self.role} buffer must be uint8 or float, got {arr.dtype}")
        self.data = arr

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)


@dataclass
class PackedImage:
    """HxWxN packed roughness/metallic buffer."""

    data: np.ndarray
    layout: Tuple[str, ...]

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    @property
    def channels(self) -> int:
        return int(self.data.shape[2])

    def channel(self, role: str) -> np.ndarray:
        """Return a view of one channel by role."""
        try:
            idx = self.layout.index(role)
        except ValueError:
            raise KeyError(f"Layout {self.layout} has no '{role}' channel") from None
        return self.data[:, :, idx]


def _full_scale(dtype: np.dtype, value: float):
    if dtype == np.uint8:
        return np.uint8(int(round(float(np.clip(value, 0.0, 1.0)) * 255.0)))
    return dtype.type(value)


def _as_buffer(source, role: str) -> Optional[ChannelBuffer]:
    if source is None or isinstance(source, ChannelBuffer):
        return source
    return ChannelBuffer(np.asarray(source), role)


def _common_dtype(roughness: Optional[ChannelBuffer],
                  metallic: Optional[ChannelBuffer]) -> np.dtype:
    dtypes = {b.data.dtype for b in (roughness, metallic) if b is not None}
    if len(dtypes) == 1:
        return dtypes.pop()
    return np.dtype(np.float32)


def _samples(buffer: ChannelBuffer, dtype: np.dtype) -> np.ndarray:
    arr = buffer.data
    if arr.dtype == dtype:
        return arr
    if arr.dtype == np.uint8:
        return arr.astype(dtype) / dtype.type(255.0)
    return arr.astype(dtype, copy=False)


def pack_roughness_metallic(
    roughness: Union[ChannelBuffer, np.ndarray, None],
    metallic: Union[ChannelBuffer, np.ndarray, None],
    channels: int = 3,
    reserved_value: float = DEFAULT_RESERVED,
    default_roughness: float = DEFAULT_ROUGHNESS,
    default_metallic: float = DEFAULT_METALLIC,
    material: str = None,
) -> Optional[PackedImage]:
    """Pack roughness and metallic samples into one image.

    Returns None when both sources are absent. With both present the sizes
    must match exactly; the output always takes the roughness dimensions.
    Defaults are in [0, 1] and scaled to the sample type.
    """
    if channels not in LAYOUTS:
        raise ValueError(f"channels must be one of {sorted(LAYOUTS)}, got {channels}")
    roughness = _as_buffer(roughness, ROUGHNESS)
    metallic = _as_buffer(metallic, METALLIC)

    if roughness is None and metallic is None:
        logger.debug("Material %s has no roughness or metallic source; nothing to pack",
                     material or "<unnamed>")
        return None

    if roughness is not None and metallic is not None and roughness.size != metallic.size:
        raise DimensionMismatch(
            f"Roughness is {roughness.width}x{roughness.height} but metallic is "
            f"{metallic.width}x{metallic.height}",
            material=material,
        )

    shape_src = roughness if roughness is not None else metallic
    dtype = _common_dtype(roughness, metallic)
    layout = LAYOUTS[channels]
    packed = np.empty((shape_src.height, shape_src.width, channels), dtype=dtype)

    for idx, role in enumerate(layout):
        if role == RESERVED:
            packed[:, :, idx] = _full_scale(dtype, reserved_value)
        elif role == ROUGHNESS:
            if roughness is None:
                packed[:, :, idx] = _full_scale(dtype, default_roughness)
            else:
                packed[:, :, idx] = _samples(roughness, dtype)
        else:
            if metallic is None:
                packed[:, :, idx] = _full_scale(dtype, default_metallic)
            else:
                packed[:, :, idx] = _samples(metallic, dtype)

    logger.debug(
        "Packed %s: %dx%d %s (roughness=%s, metallic=%s)",
        material or "<unnamed>", shape_src.width, shape_src.height, layout,
        "source" if roughness is not None else "default",
        "source" if metallic is not None else "default",
    )
    return PackedImage(packed, layout)
