"""Shared test fixtures."""

import os
import shutil
import tempfile

import numpy as np
import pytest
from PIL import Image

from AmbientKit.config import LoaderConfig
from AmbientKit.material import MaterialDescriptor, ResolutionTier, TextureNaming


def write_texture(path, width=8, height=8, value=None, channels=1, seed=0):
    """Write an 8-bit texture and return the array written.

    ``value`` fills the image with a constant; otherwise pixels are random.
    JPEG is lossy, so exact-value tests should write PNG.
    """
    os.makedirs(os.path.dirname(path), exist_ok=True)
    shape = (height, width) if channels == 1 else (height, width, channels)
    if value is None:
        rng = np.random.default_rng(seed)
        arr = rng.integers(0, 256, size=shape, dtype=np.uint8)
    else:
        arr = np.full(shape, value, dtype=np.uint8)
    Image.fromarray(arr).save(path)
    return arr


def write_material(materials_root, name, tier, slots, subfolder=None,
                   size=(8, 8), values=None, naming=None, seed=0):
    """Create texture files for ``slots`` of one tier under ``materials_root``.

    Returns ``{slot_token: array}``.
    """
    naming = naming or TextureNaming()
    tier = ResolutionTier.parse(tier)
    values = values or {}
    base = os.path.join(materials_root, subfolder or "", naming.material_dir_name(name, tier))
    written = {}
    for i, slot in enumerate(slots):
        token = slot if isinstance(slot, str) else slot.value
        if isinstance(size, dict):
            w, h = size.get(token, (8, 8))
        else:
            w, h = size
        channels = 3 if token in ("Color", "NormalGL") else 1
        path = os.path.join(base, f"{naming.material_dir_name(name, tier)}_{token}.{naming.extension}")
        written[token] = write_texture(
            path, w, h, value=values.get(token), channels=channels, seed=seed + i,
        )
    return written


@pytest.fixture
def tmp_dir():
    d = tempfile.mkdtemp()
    yield d
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def default_config():
    return LoaderConfig()


@pytest.fixture
def png_config(tmp_dir):
    """Config rooted at a temp dir that reads lossless PNG textures."""
    config = LoaderConfig(asset_root=tmp_dir)
    config.textures.extension = "png"
    return config


@pytest.fixture
def bricks_descriptor():
    return MaterialDescriptor(
        name="Bricks01",
        subfolder="walls",
        resolution=ResolutionTier.FOUR_K,
        uv_scale=(8.0, 8.0),
    )
