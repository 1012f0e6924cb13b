"""Load ambientCG-style PBR materials with runtime roughness/metallic packing."""

__version__ = "0.3.0"

from .errors import (  # noqa: E402
    MaterialLoadError,
    ResolutionUnavailable,
    MissingSlot,
    DimensionMismatch,
    DecodeFailure,
    RegistrationFailure,
)
from .material import (  # noqa: E402
    MaterialDescriptor,
    ResolutionTier,
    TextureNaming,
    TextureSlot,
)
from .negotiation import negotiate_resolution, make_tier_probe  # noqa: E402
from .packing import ChannelBuffer, PackedImage, pack_roughness_metallic  # noqa: E402
from .host import (  # noqa: E402
    AssetHost,
    ByteSource,
    InMemoryAssetHost,
    MaterialProperties,
    SamplerSettings,
    TextureImage,
    UVTransform,
)
from .config import LoaderConfig  # noqa: E402
from .loader import LoadedMaterial, MaterialLoader, resolve_uv_transform  # noqa: E402

__all__ = [
    "__version__",
    "MaterialLoadError", "ResolutionUnavailable", "MissingSlot",
    "DimensionMismatch", "DecodeFailure", "RegistrationFailure",
    "MaterialDescriptor", "ResolutionTier", "TextureNaming", "TextureSlot",
    "negotiate_resolution", "make_tier_probe",
    "ChannelBuffer", "PackedImage", "pack_roughness_metallic",
    "AssetHost", "ByteSource", "InMemoryAssetHost", "MaterialProperties",
    "SamplerSettings", "TextureImage", "UVTransform",
    "LoaderConfig",
    "LoadedMaterial", "MaterialLoader", "resolve_uv_transform",
]
