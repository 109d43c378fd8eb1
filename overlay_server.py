"""
Entry point for the camera overlay.

Usage examples:
    python overlay_server.py --image plan.png            # camera 0, hand + mouse input
    python overlay_server.py --camera 1 --no-hands       # mouse input only
    python overlay_server.py --config my_config.json --log-level DEBUG
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent
PY_DIR = ROOT / "python"
if PY_DIR.is_dir() and str(PY_DIR) not in sys.path:
    sys.path.insert(0, str(PY_DIR))

from OverlayErrors import CameraUnavailable  # noqa: E402
from helpers import load_config, setup_logging  # noqa: E402

log = logging.getLogger("PY")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Live camera feed with a gesture-controlled image overlay")
    parser.add_argument("--config", default="config.json", help="JSON config file (default: config.json)")
    parser.add_argument("--image", default=None, help="Overlay image to load at startup")
    parser.add_argument("--camera", type=int, default=None, help="Camera index (overrides config)")
    parser.add_argument("--opacity", type=float, default=None, help="Initial overlay opacity 0..1")
    parser.add_argument(
        "--no-hands",
        action="store_true",
        help="Disable MediaPipe hand input and use the mouse only.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging level (overrides debug.log_level)",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> dict:
    cfg = load_config(args.config)
    if args.camera is not None:
        cfg["camera"]["index"] = args.camera
    if args.opacity is not None:
        cfg["overlay"]["default_opacity"] = args.opacity
    if args.log_level is not None:
        cfg["debug"]["log_level"] = args.log_level
    return cfg


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level or "INFO")
    cfg = build_config(args)
    setup_logging(cfg["debug"].get("log_level", "INFO"))

    from main_loop import main as run_main_loop

    try:
        run_main_loop(cfg, args.config, image_path=args.image, hands_enabled=not args.no_hands)
    except CameraUnavailable as e:
        log.error(f"ERROR: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
