"""Pick the best resolution tier available on disk at or below a request."""

import logging
from typing import Callable, Iterable, Iterator

from .errors import ResolutionUnavailable
from .material import (
    DEFAULT_NAMING,
    MaterialDescriptor,
    ResolutionTier,
    TextureNaming,
    TextureSlot,
)

logger = logging.getLogger("ambient_materials.negotiation")

DEFAULT_PROBE_SLOTS = (TextureSlot.COLOR, TextureSlot.ROUGHNESS, TextureSlot.METALNESS)


def candidate_tiers(requested: ResolutionTier) -> Iterator[ResolutionTier]:
    """Yield ``requested`` and then each smaller tier down to 1K."""
    tier = requested
    while tier is not None:
        yield tier
        tier = tier.next_smaller()


def negotiate_resolution(
    requested: ResolutionTier,
    exists: Callable[[ResolutionTier], bool],
    material: str = None,
) -> ResolutionTier:
    """Return the largest tier <= ``requested`` for which ``exists`` holds.

    Never searches upward. Raises ResolutionUnavailable when every tier at or
    below the request is missing.
    """
    requested = ResolutionTier.parse(requested)
    tried = []
    for tier in candidate_tiers(requested):
        tried.append(tier.suffix)
        if exists(tier):
            if tier is not requested:
                logger.info(
                    "Material %s: %s unavailable, falling back to %s",
                    material or "<unnamed>", requested, tier,
                )
            return tier
        logger.debug("Material %s: tier %s not present", material or "<unnamed>", tier)
    raise ResolutionUnavailable(
        f"No suitable resolution found at or below {requested} "
        f"(tried {', '.join(tried)})",
        material=material,
        tier=requested.suffix,
    )


def make_tier_probe(
    descriptor: MaterialDescriptor,
    materials_path: str,
    file_exists: Callable[[str], bool],
    probe_slots: Iterable[TextureSlot] = DEFAULT_PROBE_SLOTS,
    naming: TextureNaming = DEFAULT_NAMING,
    required_slots: Iterable[TextureSlot] = (),
) -> Callable[[ResolutionTier], bool]:
    """Build ``exists(tier)`` for negotiation.

    A tier exists when every ``required_slots`` file is present and at least
    one ``probe_slots`` file is present.
    """
    slots = tuple(TextureSlot.parse(s) for s in probe_slots)
    if not slots:
        raise ValueError("probe_slots must not be empty")
    required = tuple(TextureSlot.parse(s) for s in required_slots)

    def present(tier: ResolutionTier, slot: TextureSlot) -> bool:
        return file_exists(descriptor.texture_path(materials_path, slot, tier, naming))

    def exists(tier: ResolutionTier) -> bool:
        if not all(present(tier, slot) for slot in required):
            return False
        return any(present(tier, slot) for slot in slots)

    return exists
