import copy
import json
import logging
import math
import os
import time

import cv2

log = logging.getLogger("CFG")

LOG_FORMAT = "[%(name)s] %(message)s"

DEFAULT_CONFIG = {
    "camera": {
        "index": 0,
        "mirror": True,
        "frame_width": 1280,
        "frame_height": 720,
    },
    "window": {
        "name": "Camera Overlay",
        "width": 1280,
        "height": 720,
    },
    "viewport": {
        "resize_debounce": 0.25,
    },
    "overlay": {
        "image": None,
        "default_opacity": 0.5,
    },
    "hands": {
        "enabled": True,
        "pinch_threshold": 0.05,
        "model_complexity": 0,
        "max_num_hands": 2,
        "min_detection_confidence": 0.6,
        "min_tracking_confidence": 0.6,
    },
    "publisher": {
        "enabled": False,
        "endpoint": "tcp://*:5556",
    },
    "debug": {
        "log_level": "INFO",
        "show_fps": True,
        "draw_pointers": True,
        "fps_window": 20,
    },
}


# ---------- vector & geometry ----------
def clamp(v, lo, hi):
    return max(lo, min(hi, v))


def dist(a, b):
    """Euclidean distance between two (x, y) points."""
    return math.hypot(b[0] - a[0], b[1] - a[1])


def angle_of(a, b):
    """Angle (radians) of the vector a -> b."""
    return math.atan2(b[1] - a[1], b[0] - a[0])


def midpoint(a, b):
    return ((a[0] + b[0]) / 2.0, (a[1] + b[1]) / 2.0)


# ---------- logging ----------
def setup_logging(level="INFO"):
    """
    Configure the root logger once with the tagged single-line format
    used across the pipeline ("[CAM] Capture thread started.").
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(level)


# ---------- config ----------
def deep_merge(base, override):
    """Return a copy of base with override merged in, one dict level at a time."""
    merged = copy.deepcopy(base)
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(merged.get(k), dict):
            merged[k] = deep_merge(merged[k], v)
        else:
            merged[k] = v
    return merged


def load_config(path="config.json"):
    """Load a JSON config merged over DEFAULT_CONFIG. Never raises."""
    if not os.path.exists(path):
        log.warning(f"config '{path}' not found, using defaults.")
        return copy.deepcopy(DEFAULT_CONFIG)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        log.warning(f"Failed to load config: {e}")
        return copy.deepcopy(DEFAULT_CONFIG)
    if not isinstance(data, dict):
        log.warning(f"config '{path}' is not a JSON object, using defaults.")
        return copy.deepcopy(DEFAULT_CONFIG)
    return deep_merge(DEFAULT_CONFIG, data)


class ConfigWatcher:
    """
    Reloads the config file when its mtime changes. check_reload() stats the
    file at most once per min_check_interval and hands back the same dict
    object until a reload happens, so callers can compare with `is`.
    """

    def __init__(self, path="config.json", min_check_interval=0.5):
        self.path = path
        self.min_check_interval = min_check_interval
        self._cfg = load_config(path)
        self._mtime = self._stat()
        self._last_checked = float("-inf")

    def _stat(self):
        try:
            return os.path.getmtime(self.path)
        except OSError:
            return None

    def get_config(self):
        return self._cfg

    def check_reload(self):
        now = time.monotonic()
        if now - self._last_checked < self.min_check_interval:
            return self._cfg
        self._last_checked = now

        mtime = self._stat()
        # a vanished file keeps the last good config
        if mtime is not None and mtime != self._mtime:
            log.info(f"{os.path.basename(self.path)} changed, reloading")
            self._cfg = load_config(self.path)
            self._mtime = mtime
        return self._cfg


# ---------- debug drawing ----------
def draw_pointer_debug(surface, pointers, color=(0, 255, 255)):
    """Mark each active pointer with a ring and its index."""
    for idx, (x, y) in enumerate(pointers):
        center = (int(round(x)), int(round(y)))
        cv2.circle(surface, center, 14, color, 2, cv2.LINE_AA)
        cv2.putText(
            surface,
            str(idx),
            (center[0] + 16, center[1] - 10),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.5,
            color,
            1,
            cv2.LINE_AA,
        )


def draw_hud(surface, lines, origin=(10, 24), dy=22):
    """Draw a block of text lines over a dark box in the top-left corner."""
    if not lines:
        return
    x0, y0 = origin
    width = 0
    for line in lines:
        (tw, _), _ = cv2.getTextSize(line, cv2.FONT_HERSHEY_SIMPLEX, 0.55, 1)
        width = max(width, tw)
    cv2.rectangle(
        surface,
        (x0 - 6, y0 - 18),
        (x0 + width + 6, y0 + dy * (len(lines) - 1) + 8),
        (0, 0, 0),
        -1,
    )
    for i, line in enumerate(lines):
        cv2.putText(
            surface,
            line,
            (x0, y0 + i * dy),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.55,
            (0, 255, 0),
            1,
            cv2.LINE_AA,
        )
