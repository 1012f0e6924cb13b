"""Define typed configuration for the material loader.

Use `LoaderConfig` to load, validate, and persist runtime settings and the
material table.
"""

import logging
import os
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List

import yaml

from .material import MaterialDescriptor, ResolutionTier, TextureNaming, TextureSlot

logger = logging.getLogger("ambient_materials.config")


@dataclass
class TextureConfig:
    """Store the distribution naming convention and slot requirements."""

    format_tag: str = "JPG"
    extension: str = "jpg"
    # A tier counts as present when any of these files exists.
    probe_slots: List[str] = field(default_factory=lambda: [
        "Color", "Roughness", "Metalness",
    ])
    # Missing files for these slots fail the load; others are skipped.
    required_slots: List[str] = field(default_factory=list)

    def naming(self) -> TextureNaming:
        return TextureNaming(format_tag=self.format_tag, extension=self.extension)


@dataclass
class PackingConfig:
    """Store roughness/metallic packing layout and fill values ([0, 1])."""

    channels: int = 3
    reserved_value: float = 0.0
    default_roughness: float = 1.0
    default_metallic: float = 0.0


_SUPPORTED_CONFIG_VERSION = 1


@dataclass
class LoaderConfig:
    """Master loader configuration."""

    config_version: int = 1
    asset_root: str = "./assets"
    materials_path: str = "materials"
    resolution_negotiation: bool = True
    log_level: str = "INFO"
    max_workers: int = 4
    max_image_pixels: int = 268435456  # 16384x16384

    textures: TextureConfig = field(default_factory=TextureConfig)
    packing: PackingConfig = field(default_factory=PackingConfig)
    materials: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_yaml(cls, path: str) -> "LoaderConfig":
        """Load configuration from YAML or return defaults."""
        if not os.path.exists(path):
            logger.info("Config file '%s' not found. Using defaults.", path)
            config = cls()
            config.validate()
            return config
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(
                f"Failed to parse YAML config '{path}': {exc}"
            ) from exc
        if not isinstance(data, dict):
            raise ValueError(
                f"Config file '{path}' must contain a YAML mapping, "
                f"got {type(data).__name__}"
            )
        yaml_version = data.get("config_version", 1)
        if isinstance(yaml_version, int) and yaml_version > _SUPPORTED_CONFIG_VERSION:
            logger.warning(
                "Config file '%s' has config_version=%d, but this build only "
                "supports up to version %d. Some settings may be ignored.",
                path, yaml_version, _SUPPORTED_CONFIG_VERSION,
            )
        config = cls()
        _merge_dict_to_dataclass(config, data)
        try:
            config.validate()
        except ValueError as exc:
            raise ValueError(f"{path}: {exc}") from exc
        return config

    def to_yaml(self, path: str):
        """Write configuration to a YAML file."""
        import dataclasses
        data = dataclasses.asdict(self)
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        ext = os.path.splitext(path)[1]
        tmp_path = f"{path}.tmp.{os.getpid()}.{threading.get_ident()}{ext}"
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                yaml.dump(data, f, default_flow_style=False, sort_keys=False)
            os.replace(tmp_path, path)
        finally:
            if os.path.exists(tmp_path):
                try:
                    os.remove(tmp_path)
                except OSError:
                    pass

    @property
    def materials_root(self) -> str:
        """Absolute-or-relative directory holding the material folders."""
        return os.path.join(self.asset_root, self.materials_path)

    def descriptors(self) -> List[MaterialDescriptor]:
        """Build descriptors from the material table."""
        return [MaterialDescriptor.from_dict(entry) for entry in self.materials]

    def validate(self):
        """Validate configuration values. Raises ValueError on invalid config."""
        errors = []

        valid_log_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if str(self.log_level).upper() not in valid_log_levels:
            errors.append(
                f"log_level must be one of {sorted(valid_log_levels)}, "
                f"got '{self.log_level}'"
            )
        if self.max_workers < 1:
            errors.append("max_workers must be >= 1")
        if self.max_workers > 128:
            errors.append("max_workers must be <= 128")
        if self.max_image_pixels < 0:
            errors.append("max_image_pixels must be >= 0 (0 = unlimited)")
        if not str(self.asset_root).strip():
            errors.append("asset_root must not be empty")
        if os.path.isabs(str(self.materials_path)) or ".." in str(
            self.materials_path
        ).replace("\\", "/").split("/"):
            errors.append(
                f"materials_path must be relative to asset_root, got '{self.materials_path}'"
            )

        # Textures
        tex = self.textures
        if not str(tex.format_tag).strip():
            errors.append("textures.format_tag must not be empty")
        ext = str(tex.extension).lstrip(".")
        if not ext or "/" in ext or "\\" in ext:
            errors.append(f"textures.extension is invalid: '{tex.extension}'")
        if not tex.probe_slots:
            errors.append("textures.probe_slots must not be empty")
        for key in ("probe_slots", "required_slots"):
            for slot in getattr(tex, key):
                try:
                    TextureSlot.parse(slot)
                except ValueError as exc:
                    errors.append(f"textures.{key}: {exc}")

        # Packing
        pk = self.packing
        if pk.channels not in (2, 3):
            errors.append(f"packing.channels must be 2 or 3, got {pk.channels}")
        for key in ("reserved_value", "default_roughness", "default_metallic"):
            value = getattr(pk, key)
            if not (0.0 <= float(value) <= 1.0):
                errors.append(f"packing.{key} must be in [0, 1], got {value}")

        # Material table
        seen = set()
        for idx, entry in enumerate(self.materials):
            try:
                desc = MaterialDescriptor.from_dict(entry)
            except ValueError as exc:
                errors.append(f"materials[{idx}]: {exc}")
                continue
            key = (desc.subfolder, desc.name, desc.resolution)
            if key in seen:
                errors.append(
                    f"materials[{idx}]: duplicate material '{desc.base_path}' at {desc.resolution}"
                )
            seen.add(key)

        if errors:
            raise ValueError(
                "Configuration validation failed:\n" +
                "\n".join(f"  - {e}" for e in errors)
            )


def default_material_entry() -> Dict[str, Any]:
    """Example table entry written by ``--generate-config``."""
    return {
        "name": "Bricks01",
        "subfolder": "walls",
        "resolution": ResolutionTier.FOUR_K.value,
        "uv_scale": [8.0, 8.0],
    }


def _merge_dict_to_dataclass(obj, data: dict, _path: str = ""):
    import dataclasses
    for key, value in data.items():
        if hasattr(obj, key):
            field_val = getattr(obj, key)
            if dataclasses.is_dataclass(field_val) and isinstance(value, dict):
                _merge_dict_to_dataclass(field_val, value, f"{_path}{key}.")
            else:
                full_key = f"{_path}{key}"
                # Reject None for fields with non-None defaults
                if value is None and field_val is not None:
                    logger.warning(
                        f"Config key '{full_key}' is null but field default is "
                        f"{type(field_val).__name__}. Using default value."
                    )
                    continue
                expected_type = type(field_val)
                # Check type compatibility (allow int->float and float->int promotion)
                if (field_val is not None
                        and not isinstance(value, expected_type)
                        and not (expected_type is float
                                 and isinstance(value, int))
                        and not (expected_type is int
                                 and isinstance(value, float)
                                 and value == int(value))):
                    logger.warning(
                        f"Config type mismatch for '{full_key}': "
                        f"expected {expected_type.__name__}, "
                        f"got {type(value).__name__} ({value!r}). "
                        f"Using default value."
                    )
                    continue
                if (expected_type is int and isinstance(value, float)
                        and value == int(value)):
                    value = int(value)
                if expected_type is float and isinstance(value, int):
                    value = float(value)
                setattr(obj, key, value)
        else:
            full_key = f"{_path}{key}"
            logger.warning(f"Unknown config key ignored: '{full_key}'")
