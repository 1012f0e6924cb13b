"""Command-line interface for the material loader."""

import argparse
import logging
import os
import sys

from .config import LoaderConfig, default_material_entry
from .core import export_path, save_image, setup_logging
from .errors import MaterialLoadError
from .loader import PACKED_TEXTURE_KEY, MaterialLoader

logger = logging.getLogger("ambient_materials")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Resolve and load ambientCG-style PBR materials",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  AmbientKit --config materials.yaml
  AmbientKit -c materials.yaml --material Bricks01 --dry-run
  AmbientKit -c materials.yaml --export ./packed
  AmbientKit --generate-config materials.yaml
        """
    )
    parser.add_argument("--config", "-c", help="Path to config YAML")
    parser.add_argument("--asset-root", help="Directory holding the materials path")
    parser.add_argument("--materials-path", help="Materials directory relative to the asset root")
    parser.add_argument("--material", "-m", action="append", default=[],
                        help="Only load this material (name or subfolder/name); repeatable")
    parser.add_argument("--no-negotiation", action="store_true",
                        help="Require the exact requested resolution")
    parser.add_argument("--dry-run", action="store_true",
                        help="Report the negotiated tier and files without decoding")
    parser.add_argument("--export", metavar="DIR",
                        help="Write each packed roughness/metallic map as PNG under DIR")
    parser.add_argument("--workers", type=int, help="Max parallel loads")
    parser.add_argument("--generate-config", metavar="PATH", nargs="?", const="materials.yaml",
                        help="Write a default config YAML and exit")
    parser.add_argument("--log-level",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    return parser


def _select(descriptors, wanted):
    if not wanted:
        return descriptors
    wanted = set(wanted)
    selected = [d for d in descriptors if d.name in wanted or d.base_path in wanted]
    missing = wanted - {d.name for d in selected} - {d.base_path for d in selected}
    if missing:
        logger.warning("Materials not in config table: %s", sorted(missing))
    return selected


def _export_packed(loader: MaterialLoader, loaded, export_dir: str) -> str:
    handle = loaded.textures.get(PACKED_TEXTURE_KEY)
    if handle is None:
        return None
    image = loader.host.texture(handle)
    out_path = export_path(export_dir, image.label, ext=".png")
    save_image(image.data, out_path)
    return out_path


def main():
    """Parse CLI arguments, load the configured materials, and report results."""
    args = _build_parser().parse_args()

    if args.generate_config:
        config = LoaderConfig()
        config.materials.append(default_material_entry())
        dest = args.generate_config
        if os.path.isdir(dest):
            dest = os.path.join(dest, "materials.yaml")
        config.to_yaml(dest)
        logger.info("Generated default %s", dest)
        print(f"Generated default {dest}")
        return

    # Surface config warnings before full logging is configured.
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")

    if args.config:
        if not os.path.exists(args.config):
            logger.error("Config file not found: %s", args.config)
            print(f"Error: Config file not found: {args.config}")
            sys.exit(1)
        try:
            config = LoaderConfig.from_yaml(args.config)
        except ValueError as e:
            logger.error("Invalid config file '%s': %s", args.config, e)
            print(f"Error: Invalid config: {e}")
            sys.exit(1)
    else:
        config = LoaderConfig()

    if args.asset_root:
        config.asset_root = args.asset_root
    if args.materials_path:
        config.materials_path = args.materials_path
    if args.no_negotiation:
        config.resolution_negotiation = False
    if args.workers is not None:
        config.max_workers = args.workers
    if args.log_level:
        config.log_level = args.log_level

    try:
        config.validate()
    except ValueError as e:
        logger.error(str(e))
        print(f"Error: {e}")
        sys.exit(1)

    setup_logging(config.log_level)

    if not os.path.isdir(config.materials_root):
        logger.error("Materials directory not found: %s", config.materials_root)
        print(f"Error: Materials directory not found: {config.materials_root}")
        sys.exit(1)

    descriptors = _select(config.descriptors(), args.material)
    if not descriptors:
        print("No materials to load.")
        return

    loader = MaterialLoader(config)
    failed = 0

    if args.dry_run:
        for desc in descriptors:
            try:
                tier = loader.resolve_tier(desc)
                plan = loader.plan(desc)
            except MaterialLoadError as exc:
                failed += 1
                print(f"{desc.base_path}: FAILED {exc}")
                continue
            present = [slot for slot, path in plan.items() if path]
            print(f"{desc.base_path}: {desc.resolution} -> {tier} [{', '.join(present)}]")
        if failed:
            sys.exit(1)
        return

    results = loader.load_many(descriptors, progress=True)
    for desc in descriptors:
        result = results[desc]
        if isinstance(result, MaterialLoadError):
            failed += 1
            print(f"{desc.base_path}: FAILED {result}")
            continue
        line = f"{desc.base_path}: {result.tier} uv={result.uv_transform.scale}"
        if args.export:
            out = _export_packed(loader, result, args.export)
            if out:
                line += f" packed={out}"
        print(line)

    logger.info("Loaded %d/%d materials", len(descriptors) - failed, len(descriptors))
    if failed:
        sys.exit(1)


if __name__ == "__main__":
    main()
