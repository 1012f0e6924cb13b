"""Tests for CLI argument handling."""

import os
import shutil
import sys
import tempfile
import unittest
from io import StringIO
from unittest import mock

import yaml
from PIL import Image

from conftest import write_material
from AmbientKit.material import TextureNaming

_PNG = TextureNaming(format_tag="JPG", extension="png")


class TestCLI(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.materials = os.path.join(self.tmpdir, "materials")
        os.makedirs(self.materials)
        self.config_path = os.path.join(self.tmpdir, "materials.yaml")

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def _write_config(self, materials, **extra):
        data = {
            "asset_root": self.tmpdir,
            "textures": {"extension": "png"},
            "materials": materials,
        }
        data.update(extra)
        with open(self.config_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f)

    def _run(self, *argv):
        from AmbientKit import cli
        out = StringIO()
        with mock.patch.object(sys, "argv", ["AmbientKit", *argv]), \
                mock.patch("AmbientKit.cli.setup_logging"), \
                mock.patch("sys.stdout", out):
            try:
                cli.main()
                code = 0
            except SystemExit as exc:
                code = exc.code
        return code, out.getvalue()

    def test_generate_config_writes_example_table(self):
        dest = os.path.join(self.tmpdir, "gen.yaml")
        code, out = self._run("--generate-config", dest)
        self.assertEqual(code, 0)
        self.assertIn("Generated default", out)
        with open(dest, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        self.assertEqual(data["materials"][0]["name"], "Bricks01")

    def test_missing_config_exits_nonzero(self):
        code, out = self._run("--config", os.path.join(self.tmpdir, "nope.yaml"))
        self.assertEqual(code, 1)
        self.assertIn("Config file not found", out)

    def test_loads_and_reports_negotiated_tier(self):
        write_material(self.materials, "Bricks01", "2K", ["Roughness", "Metalness"],
                       subfolder="walls", naming=_PNG)
        self._write_config([{"name": "Bricks01", "subfolder": "walls",
                             "resolution": "4K", "uv_scale": [8, 8]}])
        code, out = self._run("--config", self.config_path)
        self.assertEqual(code, 0)
        self.assertIn("walls/Bricks01: 2K uv=(8.0, 8.0)", out)

    def test_same_material_at_two_tiers_reported_separately(self):
        write_material(self.materials, "Rock", "1K", ["Color"], naming=_PNG)
        write_material(self.materials, "Rock", "2K", ["Color"], naming=_PNG)
        self._write_config([{"name": "Rock", "resolution": "1K"},
                            {"name": "Rock", "resolution": "2K"}])
        code, out = self._run("--config", self.config_path)
        self.assertEqual(code, 0)
        self.assertIn("Rock: 1K uv=", out)
        self.assertIn("Rock: 2K uv=", out)

    def test_failure_sets_exit_code(self):
        self._write_config([{"name": "Ghost", "resolution": "1K"}])
        code, out = self._run("--config", self.config_path)
        self.assertEqual(code, 1)
        self.assertIn("Ghost: FAILED", out)

    def test_dry_run_lists_files(self):
        write_material(self.materials, "Rock", "1K", ["Color", "Roughness"], naming=_PNG)
        self._write_config([{"name": "Rock", "resolution": "8K"}])
        code, out = self._run("--config", self.config_path, "--dry-run")
        self.assertEqual(code, 0)
        self.assertIn("Rock: 8K -> 1K [Color, Roughness]", out)

    def test_no_negotiation_flag(self):
        write_material(self.materials, "Rock", "1K", ["Color"], naming=_PNG)
        self._write_config([{"name": "Rock", "resolution": "2K"}])
        code, _ = self._run("--config", self.config_path, "--no-negotiation")
        self.assertEqual(code, 1)

    def test_material_filter(self):
        write_material(self.materials, "Rock", "1K", ["Color"], naming=_PNG)
        self._write_config([{"name": "Rock"}, {"name": "Ghost"}])
        code, out = self._run("--config", self.config_path, "--material", "Rock")
        self.assertEqual(code, 0)
        self.assertNotIn("Ghost", out)

    def test_export_writes_packed_png(self):
        write_material(self.materials, "Rock", "1K", ["Roughness", "Metalness"], naming=_PNG)
        self._write_config([{"name": "Rock"}])
        export_dir = os.path.join(self.tmpdir, "export")
        code, out = self._run("--config", self.config_path, "--export", export_dir)
        self.assertEqual(code, 0)
        expected = os.path.join(export_dir, "materials", "Rock_1K-JPG",
                                "Rock_1K-JPG_MetallicRoughness.png")
        self.assertTrue(os.path.exists(expected), out)
        with Image.open(expected) as img:
            self.assertEqual(img.mode, "RGB")

    def test_missing_materials_dir(self):
        shutil.rmtree(self.materials)
        self._write_config([{"name": "Rock"}])
        code, out = self._run("--config", self.config_path)
        self.assertEqual(code, 1)
        self.assertIn("Materials directory not found", out)


if __name__ == "__main__":
    unittest.main(verbosity=2)
