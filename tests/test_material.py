"""Tests for material descriptors, tiers and file naming."""

import unittest

from AmbientKit.material import (
    MaterialDescriptor,
    ResolutionTier,
    TextureNaming,
    TextureSlot,
)


class TestResolutionTier(unittest.TestCase):
    def test_tiers_are_totally_ordered(self):
        tiers = list(ResolutionTier)
        self.assertEqual(sorted(tiers), tiers)
        self.assertLess(ResolutionTier.ONE_K, ResolutionTier.SIXTEEN_K)
        self.assertGreaterEqual(ResolutionTier.FOUR_K, ResolutionTier.FOUR_K)

    def test_suffixes_match_distribution(self):
        self.assertEqual(
            [t.suffix for t in ResolutionTier],
            ["1K", "2K", "4K", "8K", "12K", "16K"],
        )

    def test_next_smaller_walks_down_and_stops(self):
        self.assertIs(ResolutionTier.SIXTEEN_K.next_smaller(), ResolutionTier.TWELVE_K)
        self.assertIs(ResolutionTier.TWO_K.next_smaller(), ResolutionTier.ONE_K)
        self.assertIsNone(ResolutionTier.ONE_K.next_smaller())

    def test_parse(self):
        self.assertIs(ResolutionTier.parse("4k"), ResolutionTier.FOUR_K)
        self.assertIs(ResolutionTier.parse(ResolutionTier.TWO_K), ResolutionTier.TWO_K)
        with self.assertRaises(ValueError):
            ResolutionTier.parse("3K")


class TestTextureSlot(unittest.TestCase):
    def test_parse_accepts_token_and_name(self):
        self.assertIs(TextureSlot.parse("Metalness"), TextureSlot.METALNESS)
        self.assertIs(TextureSlot.parse("normal"), TextureSlot.NORMAL)
        with self.assertRaises(ValueError):
            TextureSlot.parse("Specular")

    def test_only_color_is_srgb(self):
        self.assertEqual([s for s in TextureSlot if s.is_srgb], [TextureSlot.COLOR])

    def test_packed_sources_decode_single_channel(self):
        self.assertEqual(TextureSlot.ROUGHNESS.decode_channels, 1)
        self.assertEqual(TextureSlot.METALNESS.decode_channels, 1)


class TestMaterialDescriptor(unittest.TestCase):
    def test_base_path_with_and_without_subfolder(self):
        self.assertEqual(MaterialDescriptor("Bricks01").base_path, "Bricks01")
        self.assertEqual(
            MaterialDescriptor("Bricks01", subfolder="walls").base_path, "walls/Bricks01",
        )

    def test_texture_path_follows_distribution_naming(self):
        desc = MaterialDescriptor("Bricks01", ResolutionTier.TWO_K, subfolder="walls")
        self.assertEqual(
            desc.texture_path("materials", TextureSlot.ROUGHNESS),
            "materials/walls/Bricks01_2K-JPG/Bricks01_2K-JPG_Roughness.jpg",
        )
        self.assertEqual(
            desc.texture_path("materials", TextureSlot.NORMAL, ResolutionTier.ONE_K),
            "materials/walls/Bricks01_1K-JPG/Bricks01_1K-JPG_NormalGL.jpg",
        )

    def test_custom_naming(self):
        naming = TextureNaming(format_tag="PNG", extension=".png")
        desc = MaterialDescriptor("Metal07", ResolutionTier.EIGHT_K)
        self.assertEqual(
            desc.texture_path("", TextureSlot.COLOR, naming=naming),
            "Metal07_8K-PNG/Metal07_8K-PNG_Color.png",
        )

    def test_subfolder_is_normalized(self):
        desc = MaterialDescriptor("Wood", subfolder="floors\\./oak/")
        self.assertEqual(desc.subfolder, "floors/oak")

    def test_subfolder_traversal_rejected(self):
        with self.assertRaises(ValueError):
            MaterialDescriptor("Wood", subfolder="../outside")
        with self.assertRaises(ValueError):
            MaterialDescriptor("Wood", subfolder="/abs/path")

    def test_empty_or_pathlike_name_rejected(self):
        with self.assertRaises(ValueError):
            MaterialDescriptor("  ")
        with self.assertRaises(ValueError):
            MaterialDescriptor("walls/Bricks01")

    def test_is_immutable(self):
        desc = MaterialDescriptor("Bricks01")
        with self.assertRaises(AttributeError):
            desc.name = "Other"

    def test_uv_scale_coerced(self):
        self.assertEqual(MaterialDescriptor("A", uv_scale=[2, 3]).uv_scale, (2.0, 3.0))
        self.assertEqual(MaterialDescriptor("A", uv_scale=4).uv_scale, (4.0, 4.0))
        with self.assertRaises(ValueError):
            MaterialDescriptor("A", uv_scale=(1, 2, 3))

    def test_with_resolution_returns_copy(self):
        desc = MaterialDescriptor("A", ResolutionTier.FOUR_K)
        lower = desc.with_resolution("1K")
        self.assertIs(lower.resolution, ResolutionTier.ONE_K)
        self.assertIs(desc.resolution, ResolutionTier.FOUR_K)

    def test_from_dict_round_trip(self):
        data = {"name": "Bricks01", "subfolder": "walls", "resolution": "4K",
                "uv_scale": [8.0, 8.0]}
        desc = MaterialDescriptor.from_dict(data)
        self.assertIs(desc.resolution, ResolutionTier.FOUR_K)
        self.assertEqual(desc.to_dict(), data)

    def test_from_dict_rejects_unknown_keys(self):
        with self.assertRaises(ValueError):
            MaterialDescriptor.from_dict({"name": "A", "colour": "red"})


if __name__ == "__main__":
    unittest.main(verbosity=2)
