"""Host asset-system interfaces and an in-memory reference host."""

import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol, Tuple

import numpy as np

from .errors import RegistrationFailure
from .material import TextureSlot

logger = logging.getLogger("ambient_materials.host")


@dataclass(frozen=True)
class UVTransform:
    """2D affine UV transform: scale followed by translation."""

    scale: Tuple[float, float] = (1.0, 1.0)
    translation: Tuple[float, float] = (0.0, 0.0)

    @classmethod
    def identity(cls) -> "UVTransform":
        return cls()

    @classmethod
    def from_scale(cls, scale) -> "UVTransform":
        sx, sy = scale
        return cls(scale=(float(sx), float(sy)))

    @property
    def is_identity(self) -> bool:
        return self.scale == (1.0, 1.0) and self.translation == (0.0, 0.0)

    def matrix(self) -> np.ndarray:
        """3x3 homogeneous matrix."""
        sx, sy = self.scale
        tx, ty = self.translation
        return np.array(
            [[sx, 0.0, tx], [0.0, sy, ty], [0.0, 0.0, 1.0]], dtype=np.float32,
        )

    def apply(self, uv) -> np.ndarray:
        uv = np.asarray(uv, dtype=np.float32)
        return uv * np.asarray(self.scale, dtype=np.float32) + np.asarray(
            self.translation, dtype=np.float32,
        )


@dataclass(frozen=True)
class SamplerSettings:
    """Texture sampler addressing; materials tile, so both axes repeat."""

    address_mode_u: str = "repeat"
    address_mode_v: str = "repeat"


REPEAT_SAMPLER = SamplerSettings()


@dataclass
class TextureImage:
    """A decoded image ready for registration."""

    data: np.ndarray
    label: str
    srgb: bool = False

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])


@dataclass(frozen=True)
class TextureHandle:
    id: int
    label: str = ""


@dataclass(frozen=True)
class MaterialHandle:
    id: int
    label: str = ""


@dataclass
class MaterialProperties:
    """PBR material inputs handed to ``build_material``.

    Factor defaults follow the host's standard material (non-metallic,
    half rough) and are raised to 1.0 when a packed map is attached so the
    map values pass through unscaled.
    """

    label: str = ""
    base_color_texture: Optional[TextureHandle] = None
    normal_map_texture: Optional[TextureHandle] = None
    metallic_roughness_texture: Optional[TextureHandle] = None
    occlusion_texture: Optional[TextureHandle] = None
    thickness_texture: Optional[TextureHandle] = None
    metallic: float = 0.0
    perceptual_roughness: float = 0.5
    uv_transform: UVTransform = field(default_factory=UVTransform.identity)


SLOT_FIELDS = {
    TextureSlot.COLOR: "base_color_texture",
    TextureSlot.NORMAL: "normal_map_texture",
    TextureSlot.AMBIENT_OCCLUSION: "occlusion_texture",
    TextureSlot.DISPLACEMENT: "thickness_texture",
}


class ByteSource(Protocol):
    """Raw texture bytes keyed by asset-relative path."""

    def exists(self, rel_path: str) -> bool:
        ...

    def read_bytes(self, rel_path: str) -> bytes:
        """Return file contents; raise FileNotFoundError when absent."""
        ...


class AssetHost(Protocol):
    """Registration surface of the host asset system."""

    def register_texture(self, image: TextureImage, sampler: SamplerSettings) -> TextureHandle:
        ...

    def release_texture(self, handle: TextureHandle) -> None:
        ...

    def build_material(self, properties: MaterialProperties) -> MaterialHandle:
        ...


class InMemoryAssetHost:
    """Thread-safe registry holding textures and materials in memory."""

    def __init__(self):  # noqa: D107
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self.textures: Dict[int, Tuple[TextureImage, SamplerSettings]] = {}
        self.materials: Dict[int, MaterialProperties] = {}

    def register_texture(self, image: TextureImage, sampler: SamplerSettings) -> TextureHandle:
        if image.data.size == 0 or image.data.ndim not in (2, 3):
            raise RegistrationFailure(
                f"Cannot register degenerate image (shape={image.data.shape})",
                path=image.label,
            )
        with self._lock:
            handle = TextureHandle(next(self._ids), image.label)
            self.textures[handle.id] = (image, sampler)
        logger.debug("Registered texture %d (%s, %dx%d)",
                     handle.id, image.label, image.width, image.height)
        return handle

    def release_texture(self, handle: TextureHandle) -> None:
        with self._lock:
            self.textures.pop(handle.id, None)
        logger.debug("Released texture %d (%s)", handle.id, handle.label)

    def build_material(self, properties: MaterialProperties) -> MaterialHandle:
        with self._lock:
            for tex in (
                properties.base_color_texture,
                properties.normal_map_texture,
                properties.metallic_roughness_texture,
                properties.occlusion_texture,
                properties.thickness_texture,
            ):
                if tex is not None and tex.id not in self.textures:
                    raise RegistrationFailure(
                        f"Material references unknown texture {tex.id}",
                        material=properties.label,
                    )
            handle = MaterialHandle(next(self._ids), properties.label)
            self.materials[handle.id] = properties
        logger.debug("Built material %d (%s)", handle.id, properties.label)
        return handle

    def texture(self, handle: TextureHandle) -> TextureImage:
        with self._lock:
            return self.textures[handle.id][0]

    def material(self, handle: MaterialHandle) -> MaterialProperties:
        with self._lock:
            return self.materials[handle.id]
