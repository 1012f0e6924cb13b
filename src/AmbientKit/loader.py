"""Resolve material descriptors into registered textures and a host material.

A load runs in two halves. The read/decode/pack half touches only the
filesystem and the codec; the registration half mutates the host. Every
failure in the first half leaves the host untouched, and a failure during
registration releases whatever this load had already registered.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Union

from tqdm import tqdm

from .config import LoaderConfig
from .core.io import FileByteSource, decode_image
from .errors import (
    DecodeFailure,
    DimensionMismatch,
    MaterialLoadError,
    MissingSlot,
    RegistrationFailure,
    ResolutionUnavailable,
)
from .host import (
    REPEAT_SAMPLER,
    SLOT_FIELDS,
    AssetHost,
    ByteSource,
    InMemoryAssetHost,
    MaterialHandle,
    MaterialProperties,
    TextureHandle,
    TextureImage,
    UVTransform,
)
from .material import (
    PACKED_SOURCE_SLOTS,
    MaterialDescriptor,
    ResolutionTier,
    TextureSlot,
)
from .negotiation import make_tier_probe, negotiate_resolution
from .packing import METALLIC, ROUGHNESS, ChannelBuffer, PackedImage, pack_roughness_metallic

logger = logging.getLogger("ambient_materials.loader")

PACKED_TEXTURE_KEY = "MetallicRoughness"


@dataclass
class LoadedMaterial:
    """Result of a successful load."""

    handle: MaterialHandle
    uv_transform: UVTransform
    tier: ResolutionTier
    descriptor: MaterialDescriptor
    textures: Dict[str, TextureHandle] = field(default_factory=dict)
    source_paths: Dict[str, str] = field(default_factory=dict)


def resolve_uv_transform(declared=None, override=None) -> UVTransform:
    """Explicit override beats the declared scale; neither means identity.

    A zero scale also means identity.
    """
    scale = override if override is not None else declared
    if scale is None:
        return UVTransform.identity()
    if isinstance(scale, (int, float)):
        scale = (scale, scale)
    sx, sy = (float(v) for v in scale)
    if sx == 0.0 and sy == 0.0:
        return UVTransform.identity()
    return UVTransform.from_scale((sx, sy))


class MaterialLoader:
    """Load materials from the asset root into a host asset system."""

    def __init__(self, config: LoaderConfig = None, host: AssetHost = None,
                 source: ByteSource = None):  # noqa: D107
        self.config = config or LoaderConfig()
        self.host = host if host is not None else InMemoryAssetHost()
        self.source = source if source is not None else FileByteSource(self.config.asset_root)
        self.naming = self.config.textures.naming()
        self._probe_slots = tuple(TextureSlot.parse(s) for s in self.config.textures.probe_slots)
        self._required_slots = {
            TextureSlot.parse(s) for s in self.config.textures.required_slots
        }

    def _texture_path(self, descriptor: MaterialDescriptor, slot: TextureSlot,
                      tier: ResolutionTier) -> str:
        return descriptor.texture_path(self.config.materials_path, slot, tier, self.naming)

    def resolve_tier(self, descriptor: MaterialDescriptor) -> ResolutionTier:
        """Pick the tier to load, honoring ``resolution_negotiation``."""
        probe = make_tier_probe(
            descriptor,
            self.config.materials_path,
            self.source.exists,
            self._probe_slots,
            self.naming,
            required_slots=self._required_slots,
        )
        if self.config.resolution_negotiation:
            return negotiate_resolution(descriptor.resolution, probe, descriptor.base_path)
        if probe(descriptor.resolution):
            return descriptor.resolution
        raise ResolutionUnavailable(
            f"Requested resolution {descriptor.resolution} not found "
            "and negotiation is disabled",
            material=descriptor.base_path,
            tier=descriptor.resolution.suffix,
        )

    def plan(self, descriptor: MaterialDescriptor) -> Dict[str, Optional[str]]:
        """Return ``{slot: path or None}`` for the tier a load would use, without reading."""
        tier = self.resolve_tier(descriptor)
        plan = {}
        for slot in TextureSlot:
            path = self._texture_path(descriptor, slot, tier)
            plan[slot.value] = path if self.source.exists(path) else None
        return plan

    def load(self, descriptor: MaterialDescriptor) -> LoadedMaterial:
        """Load using the descriptor's declared UV scale."""
        return self._load(descriptor, resolve_uv_transform(descriptor.uv_scale))

    def load_with_uv_scale(self, descriptor: MaterialDescriptor, uv_scale) -> LoadedMaterial:
        """Load with ``uv_scale`` overriding the declared one."""
        return self._load(descriptor, resolve_uv_transform(descriptor.uv_scale, uv_scale))

    def load_without_uv_scale(self, descriptor: MaterialDescriptor) -> LoadedMaterial:
        """Load with the identity UV transform regardless of the declared scale."""
        return self._load(descriptor, UVTransform.identity())

    def load_many(
        self,
        descriptors: Iterable[MaterialDescriptor],
        max_workers: int = None,
        progress: bool = False,
    ) -> Dict[MaterialDescriptor, Union[LoadedMaterial, MaterialLoadError]]:
        """Load independent materials concurrently; failures are returned, not raised.

        Results are keyed by descriptor, so the same material requested at two
        tiers yields two entries.
        """
        descriptors = list(descriptors)
        workers = max(1, min(max_workers or self.config.max_workers, len(descriptors) or 1))
        results: Dict[MaterialDescriptor, Union[LoadedMaterial, MaterialLoadError]] = {}
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {pool.submit(self.load, d): d for d in descriptors}
            with tqdm(total=len(futures), desc="Materials", disable=not progress) as pbar:
                for future in as_completed(futures):
                    desc = futures[future]
                    try:
                        results[desc] = future.result()
                    except MaterialLoadError as exc:
                        logger.error("Failed to load %s: %s", desc.base_path, exc)
                        results[desc] = exc
                    pbar.update(1)
        return results

    def _read(self, descriptor: MaterialDescriptor, slot: TextureSlot, path: str,
              tier: ResolutionTier) -> Optional[bytes]:
        try:
            return self.source.read_bytes(path)
        except FileNotFoundError:
            if slot in self._required_slots:
                raise MissingSlot(
                    "Required texture is missing",
                    material=descriptor.base_path, slot=slot.value, path=path,
                    tier=tier.suffix,
                ) from None
            logger.debug("Optional slot %s absent for %s: %s",
                         slot.value, descriptor.base_path, path)
            return None
        except (OSError, ValueError) as exc:
            raise MaterialLoadError(
                f"Failed to read texture: {exc}",
                material=descriptor.base_path, slot=slot.value, path=path,
                tier=tier.suffix,
            ) from exc

    def _decode(self, descriptor: MaterialDescriptor, slot: TextureSlot, path: str,
                data: bytes, tier: ResolutionTier):
        try:
            return decode_image(
                data, slot.decode_channels,
                max_pixels=self.config.max_image_pixels, path=path,
            )
        except DecodeFailure as exc:
            exc.material = descriptor.base_path
            exc.slot = slot.value
            exc.tier = tier.suffix
            raise

    def _pack(self, descriptor: MaterialDescriptor, tier: ResolutionTier,
              sources: Dict[TextureSlot, tuple]) -> Optional[PackedImage]:
        buffers = {}
        for slot, role in zip(PACKED_SOURCE_SLOTS, (ROUGHNESS, METALLIC)):
            if slot in sources:
                path, data = sources[slot]
                buffers[role] = ChannelBuffer(
                    self._decode(descriptor, slot, path, data, tier), role,
                )
        pk = self.config.packing
        try:
            return pack_roughness_metallic(
                buffers.get(ROUGHNESS),
                buffers.get(METALLIC),
                channels=pk.channels,
                reserved_value=pk.reserved_value,
                default_roughness=pk.default_roughness,
                default_metallic=pk.default_metallic,
                material=descriptor.base_path,
            )
        except DimensionMismatch as exc:
            exc.tier = tier.suffix
            exc.slot = TextureSlot.METALNESS.value
            exc.path = sources[TextureSlot.METALNESS][0]
            raise

    def _register(self, descriptor: MaterialDescriptor, images: Dict[str, TextureImage],
                  registered: Dict[str, TextureHandle], tier: ResolutionTier):
        for key, image in images.items():
            try:
                registered[key] = self.host.register_texture(image, REPEAT_SAMPLER)
            except RegistrationFailure as exc:
                exc.material = exc.material or descriptor.base_path
                exc.slot = exc.slot or key
                exc.tier = tier.suffix
                raise
            except Exception as exc:
                raise RegistrationFailure(
                    f"Host rejected texture: {exc}",
                    material=descriptor.base_path, slot=key, path=image.label,
                    tier=tier.suffix,
                ) from exc

    def _release(self, registered: Dict[str, TextureHandle]):
        for key, handle in registered.items():
            try:
                self.host.release_texture(handle)
            except Exception as exc:
                logger.warning("Failed to release texture %s (%s): %s", handle.id, key, exc)

    def _load(self, descriptor: MaterialDescriptor, uv_transform: UVTransform) -> LoadedMaterial:
        name = descriptor.base_path
        logger.info("Loading material %s (requested %s)", name, descriptor.resolution)

        tier = self.resolve_tier(descriptor)

        sources: Dict[TextureSlot, tuple] = {}
        for slot in TextureSlot:
            path = self._texture_path(descriptor, slot, tier)
            data = self._read(descriptor, slot, path, tier)
            if data is not None:
                sources[slot] = (path, data)

        packed = self._pack(descriptor, tier, sources)

        images: Dict[str, TextureImage] = {}
        source_paths: Dict[str, str] = {}
        for slot in TextureSlot:
            if slot in PACKED_SOURCE_SLOTS or slot not in sources:
                continue
            path, data = sources[slot]
            images[slot.value] = TextureImage(
                self._decode(descriptor, slot, path, data, tier), path, srgb=slot.is_srgb,
            )
            source_paths[slot.value] = path
        if packed is not None:
            label = self._texture_path(descriptor, TextureSlot.ROUGHNESS, tier)
            label = label.rsplit("_", 1)[0] + f"_{PACKED_TEXTURE_KEY}"
            images[PACKED_TEXTURE_KEY] = TextureImage(packed.data, label, srgb=False)
            for slot in PACKED_SOURCE_SLOTS:
                if slot in sources:
                    source_paths[slot.value] = sources[slot][0]
        del sources

        registered: Dict[str, TextureHandle] = {}
        try:
            self._register(descriptor, images, registered, tier)
            properties = MaterialProperties(label=name, uv_transform=uv_transform)
            for slot, attr in SLOT_FIELDS.items():
                if slot.value in registered:
                    setattr(properties, attr, registered[slot.value])
            if PACKED_TEXTURE_KEY in registered:
                properties.metallic_roughness_texture = registered[PACKED_TEXTURE_KEY]
                properties.metallic = 1.0
                properties.perceptual_roughness = 1.0
            try:
                handle = self.host.build_material(properties)
            except RegistrationFailure:
                raise
            except Exception as exc:
                raise RegistrationFailure(
                    f"Host rejected material: {exc}", material=name, tier=tier.suffix,
                ) from exc
        except RegistrationFailure:
            self._release(registered)
            raise

        logger.info(
            "Loaded material %s at %s (%d textures, uv scale %s)",
            name, tier, len(registered), uv_transform.scale,
        )
        return LoadedMaterial(
            handle=handle,
            uv_transform=uv_transform,
            tier=tier,
            descriptor=descriptor,
            textures=registered,
            source_paths=source_paths,
        )
