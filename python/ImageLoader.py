import logging
import os

import cv2
import numpy as np

from OverlayErrors import OverlayLoadFailure

log = logging.getLogger("PY")


class OverlayImage:
    """
    Decoded overlay: BGR pixels plus a float32 alpha mask in [0, 1].
    Files without an alpha channel get a fully opaque mask.
    """

    def __init__(self, pixels, alpha=None, source=None):
        if pixels.ndim == 2:
            pixels = cv2.cvtColor(pixels, cv2.COLOR_GRAY2BGR)
        if alpha is None:
            alpha = np.ones(pixels.shape[:2], dtype=np.float32)
        self.pixels = np.ascontiguousarray(pixels)
        self.alpha = np.ascontiguousarray(alpha, dtype=np.float32)
        self.source = source

    @property
    def width(self):
        return self.pixels.shape[1]

    @property
    def height(self):
        return self.pixels.shape[0]

    @property
    def size(self):
        return (self.width, self.height)

    @classmethod
    def from_array(cls, image, source=None):
        """Build from a decoded cv2 array (gray, BGR or BGRA, any bit depth)."""
        if image is None or image.size == 0:
            raise ValueError("empty image")
        if image.dtype != np.uint8:
            image = cv2.normalize(image, None, 0, 255, cv2.NORM_MINMAX).astype(np.uint8)
        if image.ndim == 3 and image.shape[2] == 4:
            alpha = image[:, :, 3].astype(np.float32) / 255.0
            return cls(image[:, :, :3], alpha, source=source)
        return cls(image, source=source)


def load_overlay_image(path):
    """Read and decode an image file. Raises OverlayLoadFailure."""
    if not path or not os.path.isfile(path):
        raise OverlayLoadFailure(path, "file not found")
    try:
        data = np.fromfile(path, dtype=np.uint8)
    except OSError as e:
        raise OverlayLoadFailure(path, str(e)) from e
    if data.size == 0:
        raise OverlayLoadFailure(path, "empty file")
    try:
        image = cv2.imdecode(data, cv2.IMREAD_UNCHANGED)
    except cv2.error as e:
        raise OverlayLoadFailure(path, str(e)) from e
    if image is None:
        raise OverlayLoadFailure(path, "not a decodable image")
    try:
        overlay = OverlayImage.from_array(image, source=path)
    except ValueError as e:
        raise OverlayLoadFailure(path, str(e)) from e
    log.info(f"Loaded overlay {os.path.basename(path)} ({overlay.width}x{overlay.height})")
    return overlay
