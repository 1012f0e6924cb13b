"""Material descriptors, resolution tiers, texture slots and file naming."""

from dataclasses import dataclass, replace
from enum import Enum
from pathlib import PurePosixPath
from typing import Optional, Tuple

from .core.paths import normalize_subfolder

DEFAULT_FORMAT_TAG = "JPG"
DEFAULT_EXTENSION = "jpg"


class ResolutionTier(Enum):
    """Texture resolution tiers in ascending order of cost."""

    ONE_K = "1K"
    TWO_K = "2K"
    FOUR_K = "4K"
    EIGHT_K = "8K"
    TWELVE_K = "12K"
    SIXTEEN_K = "16K"

    @property
    def suffix(self) -> str:
        return self.value

    @property
    def rank(self) -> int:
        return _TIER_ORDER.index(self)

    def next_smaller(self) -> Optional["ResolutionTier"]:
        """Return the next cheaper tier, or None below 1K."""
        idx = self.rank
        if idx == 0:
            return None
        return _TIER_ORDER[idx - 1]

    def __lt__(self, other):
        if not isinstance(other, ResolutionTier):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, ResolutionTier):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, ResolutionTier):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, ResolutionTier):
            return NotImplemented
        return self.rank >= other.rank

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value) -> "ResolutionTier":
        """Parse '4K', '4k' or an existing tier."""
        if isinstance(value, cls):
            return value
        text = str(value).strip().upper()
        for tier in cls:
            if tier.value == text:
                return tier
        raise ValueError(
            f"Unknown resolution tier '{value}'. "
            f"Valid: {[t.value for t in _TIER_ORDER]}"
        )


_TIER_ORDER = (
    ResolutionTier.ONE_K,
    ResolutionTier.TWO_K,
    ResolutionTier.FOUR_K,
    ResolutionTier.EIGHT_K,
    ResolutionTier.TWELVE_K,
    ResolutionTier.SIXTEEN_K,
)


class TextureSlot(Enum):
    """Texture roles, valued by the distribution's file-name token."""

    COLOR = "Color"
    NORMAL = "NormalGL"
    ROUGHNESS = "Roughness"
    METALNESS = "Metalness"
    AMBIENT_OCCLUSION = "AmbientOcclusion"
    DISPLACEMENT = "Displacement"

    @property
    def decode_channels(self) -> int:
        """Channel count requested from the codec for this slot."""
        return _SLOT_CHANNELS[self]

    @property
    def is_srgb(self) -> bool:
        return self is TextureSlot.COLOR

    @classmethod
    def parse(cls, value) -> "TextureSlot":
        """Parse a slot token ('Roughness') or enum name ('ROUGHNESS')."""
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        for slot in cls:
            if text == slot.value or text.upper() == slot.name:
                return slot
        raise ValueError(
            f"Unknown texture slot '{value}'. Valid: {[s.value for s in cls]}"
        )


_SLOT_CHANNELS = {
    TextureSlot.COLOR: 4,
    TextureSlot.NORMAL: 4,
    TextureSlot.ROUGHNESS: 1,
    TextureSlot.METALNESS: 1,
    TextureSlot.AMBIENT_OCCLUSION: 1,
    TextureSlot.DISPLACEMENT: 1,
}

PACKED_SOURCE_SLOTS = (TextureSlot.ROUGHNESS, TextureSlot.METALNESS)


@dataclass(frozen=True)
class TextureNaming:
    """Distribution naming convention: format tag and file extension."""

    format_tag: str = DEFAULT_FORMAT_TAG
    extension: str = DEFAULT_EXTENSION

    def material_dir_name(self, name: str, tier: ResolutionTier) -> str:
        return f"{name}_{tier.suffix}-{self.format_tag}"

    def texture_filename(self, name: str, tier: ResolutionTier, slot: TextureSlot) -> str:
        ext = self.extension.lstrip(".")
        return f"{self.material_dir_name(name, tier)}_{slot.value}.{ext}"


DEFAULT_NAMING = TextureNaming()


@dataclass(frozen=True)
class MaterialDescriptor:
    """Immutable request for a material; never touches the filesystem.

    ``uv_scale`` is the declared default; a scale passed at load time
    overrides it.
    """

    name: str
    resolution: ResolutionTier = ResolutionTier.ONE_K
    subfolder: Optional[str] = None
    uv_scale: Optional[Tuple[float, float]] = None

    def __post_init__(self) -> None:
        name = str(self.name or "").strip()
        if not name:
            raise ValueError("MaterialDescriptor.name must not be empty")
        if "/" in name or "\\" in name:
            raise ValueError(f"MaterialDescriptor.name must be a bare name, got: {self.name}")
        object.__setattr__(self, "name", name)
        object.__setattr__(self, "resolution", ResolutionTier.parse(self.resolution))
        if self.subfolder is not None:
            object.__setattr__(self, "subfolder", normalize_subfolder(self.subfolder))
        if self.uv_scale is not None:
            object.__setattr__(self, "uv_scale", _coerce_scale(self.uv_scale))

    @property
    def base_path(self) -> str:
        """``subfolder/name`` or ``name``."""
        if self.subfolder:
            return f"{self.subfolder}/{self.name}"
        return self.name

    def with_resolution(self, tier) -> "MaterialDescriptor":
        return replace(self, resolution=ResolutionTier.parse(tier))

    def material_dir(self, materials_path: str, tier: ResolutionTier = None,
                     naming: TextureNaming = DEFAULT_NAMING) -> str:
        """Relative directory holding one tier of this material."""
        tier = tier or self.resolution
        parts = [p for p in PurePosixPath(str(materials_path).replace("\\", "/")).parts
                 if p not in ("", ".")]
        if self.subfolder:
            parts.append(self.subfolder)
        parts.append(naming.material_dir_name(self.name, tier))
        return "/".join(parts)

    def texture_path(self, materials_path: str, slot: TextureSlot,
                     tier: ResolutionTier = None,
                     naming: TextureNaming = DEFAULT_NAMING) -> str:
        """Relative path of one slot's texture file."""
        tier = tier or self.resolution
        return "/".join([
            self.material_dir(materials_path, tier, naming),
            naming.texture_filename(self.name, tier, slot),
        ])

    def load(self, loader):
        """Load with the declared UV scale."""
        return loader.load(self)

    def load_with_uv_scale(self, loader, uv_scale):
        """Load with ``uv_scale`` overriding the declared one."""
        return loader.load_with_uv_scale(self, uv_scale)

    @classmethod
    def from_dict(cls, data: dict) -> "MaterialDescriptor":
        """Build a descriptor from a config-table mapping."""
        if not isinstance(data, dict):
            raise ValueError(f"Material entry must be a mapping, got {type(data).__name__}")
        unknown = set(data) - {"name", "subfolder", "resolution", "uv_scale"}
        if unknown:
            raise ValueError(f"Unknown material keys: {sorted(unknown)}")
        return cls(
            name=data.get("name"),
            resolution=data.get("resolution", ResolutionTier.ONE_K.value),
            subfolder=data.get("subfolder"),
            uv_scale=data.get("uv_scale"),
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "subfolder": self.subfolder,
            "resolution": self.resolution.value,
            "uv_scale": list(self.uv_scale) if self.uv_scale is not None else None,
        }


def _coerce_scale(value) -> Tuple[float, float]:
    if isinstance(value, (int, float)):
        return (float(value), float(value))
    try:
        sx, sy = value
    except (TypeError, ValueError) as exc:
        raise ValueError(f"uv_scale must be a number or a pair, got {value!r}") from exc
    return (float(sx), float(sy))
