import logging
import math

import cv2

log = logging.getLogger("RENDER")

DEFAULT_OPACITY = 0.5
TRACKBAR_NAME = "Opacity %"
TRACKBAR_MAX = 100


def parse_opacity(value, default=DEFAULT_OPACITY):
    """Opacity as a float in [0, 1]; unparsable input gives the default."""
    try:
        v = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(v):
        return default
    return max(0.0, min(1.0, v))


class OpacityControl:
    """
    Holds the overlay opacity. The value is pulled once per render tick;
    bind_trackbar() mirrors it on a HighGUI slider (0..100).
    """

    def __init__(self, value=DEFAULT_OPACITY):
        self._value = parse_opacity(value)

    def current_value(self):
        return self._value

    def set_value(self, raw):
        self._value = parse_opacity(raw, default=self._value)

    def bind_trackbar(self, window_name):
        cv2.createTrackbar(
            TRACKBAR_NAME,
            window_name,
            int(round(self._value * TRACKBAR_MAX)),
            TRACKBAR_MAX,
            self._on_trackbar,
        )

    def _on_trackbar(self, pos):
        self.set_value(pos / float(TRACKBAR_MAX))
        log.debug(f"opacity -> {self._value:.2f}")
