"""Exceptions raised while resolving and loading materials."""

from typing import Optional


class MaterialLoadError(RuntimeError):
    """Base class for load failures; carries material/slot/path/tier context."""

    def __init__(
        self,
        message: str,
        material: Optional[str] = None,
        slot: Optional[str] = None,
        path: Optional[str] = None,
        tier: Optional[str] = None,
    ):
        self.material = material
        self.slot = slot
        self.path = path
        self.tier = tier
        super().__init__(message)

    def __str__(self) -> str:
        base = super().__str__()
        context = [
            f"{key}={value}"
            for key, value in (
                ("material", self.material),
                ("tier", self.tier),
                ("slot", self.slot),
                ("path", self.path),
            )
            if value is not None
        ]
        if not context:
            return base
        return f"{base} ({', '.join(context)})"


class ResolutionUnavailable(MaterialLoadError):
    """Raised when no tier at or below the requested one has files on disk."""


class MissingSlot(MaterialLoadError):
    """Raised when a required texture slot is absent."""


class DimensionMismatch(MaterialLoadError):
    """Raised when roughness and metallic sources differ in size."""


class DecodeFailure(MaterialLoadError):
    """Raised when the codec rejects texture bytes."""


class RegistrationFailure(MaterialLoadError):
    """Raised when the host registry rejects a texture or material."""
