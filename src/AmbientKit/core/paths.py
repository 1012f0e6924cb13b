"""Relative path normalization and asset-root resolution."""

import os
from pathlib import Path, PurePosixPath, PureWindowsPath


def _normalized_parts(rel_path: str, what: str) -> list:
    """Split a relative path into canonical, traversal-free parts."""
    original = str(rel_path)
    raw = original.replace("\\", "/")
    p = PurePosixPath(raw)
    drive_like = len(raw) >= 2 and raw[1] == ":"
    if p.is_absolute() or PureWindowsPath(original).is_absolute() or drive_like:
        raise ValueError(f"{what} must be relative, got absolute path: {rel_path}")

    parts = []
    for part in p.parts:
        if part in ("", "."):
            continue
        if part == "..":
            if parts:
                parts.pop()
            else:
                raise ValueError(f"{what} escapes root via '..': {rel_path}")
            continue
        parts.append(part)
    return parts


def normalize_subfolder(subfolder: str) -> str:
    """Return ``subfolder`` as a canonical forward-slash relative path."""
    parts = _normalized_parts(subfolder, "Material subfolder")
    if not parts:
        raise ValueError(f"Material subfolder is empty after normalization: {subfolder!r}")
    return "/".join(parts)


def resolve_asset_path(asset_root: str, rel_path: str) -> str:
    """Join ``rel_path`` under ``asset_root``, refusing escapes (symlinks included)."""
    parts = _normalized_parts(rel_path, "Asset path")
    if not parts:
        raise ValueError(f"Asset path is empty after normalization: {rel_path!r}")
    full = os.path.join(asset_root, *parts)
    root_real = os.path.realpath(asset_root)
    full_real = os.path.realpath(full)
    try:
        common = os.path.commonpath([root_real, full_real])
    except ValueError as exc:
        raise ValueError(f"Asset path has incompatible root: {rel_path}") from exc
    if common != root_real:
        raise ValueError(f"Asset path resolves outside asset root: {rel_path}")
    return full


def export_path(export_dir: str, rel_path: str, suffix: str = "", ext: str = None) -> str:
    """Mirror ``rel_path`` under ``export_dir`` with an optional suffix/extension."""
    p = Path(*_normalized_parts(rel_path, "Export path"))
    stem = p.stem + suffix
    extension = ext or p.suffix
    parent = "" if str(p.parent) == "." else str(p.parent)
    return os.path.join(export_dir, parent, stem + extension)
