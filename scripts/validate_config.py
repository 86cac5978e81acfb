#!/usr/bin/env python3
"""Validate the bridge config and every preset before a session.

Presets layer over the main config the same way ``myo-osc --config`` does, so
a preset that only names a couple of channels is checked against the host and
port it would actually inherit.  Every document is checked even after one
fails; the operator sees the whole list in one run.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Dict, Iterable, List

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from software.myo_bridge.config_validation import InvalidConfig
from software.myo_bridge.settings import DEFAULT_SETTINGS, load_settings_file

DEFAULT_CONFIG = REPO_ROOT / "config" / "myo-osc.json"
DEFAULT_PRESET_DIR = REPO_ROOT / "config" / "presets"
PRESET_SUFFIXES = {".yaml", ".yml", ".json"}


def preset_paths(preset_dir: Path) -> List[Path]:
    if not preset_dir.is_dir():
        return []
    return sorted(p for p in preset_dir.iterdir() if p.suffix.lower() in PRESET_SUFFIXES)


def validate(config_path: Path, preset_dir: Path, *, verbose: bool = False) -> Dict[Path, List[str]]:
    """Return ``{document: [error, ...]}`` for every document that failed."""

    failures: Dict[Path, List[str]] = {}
    base = DEFAULT_SETTINGS
    try:
        base = load_settings_file(config_path)
        if verbose:
            print(f"[validate] ok  {config_path} ({len(base.enabled_channels())} channel(s) on)")
    except InvalidConfig as exc:
        failures[config_path] = exc.errors

    for preset in preset_paths(preset_dir):
        try:
            settings = load_settings_file(preset, base)
        except InvalidConfig as exc:
            failures[preset] = exc.errors
            continue
        if verbose:
            print(f"[validate] ok  {preset.name} → {', '.join(settings.enabled_channels()) or 'no channels'}")
    return failures


def main(argv: Iterable[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Sanity-check Myo→OSC bridge configs")
    ap.add_argument("--config", type=Path, default=DEFAULT_CONFIG, help="Path to the bridge config")
    ap.add_argument("--presets", type=Path, default=DEFAULT_PRESET_DIR, help="Directory containing presets")
    ap.add_argument("--quiet", action="store_true", help="Only report failures")
    args = ap.parse_args(list(argv) if argv is not None else None)

    failures = validate(args.config, args.presets, verbose=not args.quiet)
    for errors in failures.values():
        for line in errors:
            print(f"[validate] ✖ {line}")
    if failures:
        print(f"[validate] {len(failures)} document(s) failed validation")
        return 1
    if not args.quiet:
        print("[validate] all clear.")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
