import logging
import math

import cv2
import numpy as np

from OpacityControl import parse_opacity
from OverlayErrors import RenderFailure

log = logging.getLogger("RENDER")


def overlay_matrix(state, image_size):
    """
    2x3 affine matrix mapping overlay pixels onto the surface:
    translate(t) . rotate(r) . scale(s, s) . shear(kx, ky) . translate(-w/2, -h/2)
    """
    iw, ih = image_size
    tx, ty = state.translation
    kx, ky = state.skew
    c = math.cos(state.rotation)
    s = math.sin(state.rotation)

    translate = np.array([[1.0, 0.0, tx], [0.0, 1.0, ty], [0.0, 0.0, 1.0]])
    rotate = np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])
    scale = np.diag([state.scale, state.scale, 1.0])
    shear = np.array([[1.0, kx, 0.0], [ky, 1.0, 0.0], [0.0, 0.0, 1.0]])
    center = np.array([[1.0, 0.0, -iw / 2.0], [0.0, 1.0, -ih / 2.0], [0.0, 0.0, 1.0]])

    m = translate @ rotate @ scale @ shear @ center
    return m[:2].astype(np.float32)


class Compositor:
    """
    Renders one frame: clear, live video stretched to the surface, then the
    transformed overlay blended at the current opacity.
    The surface buffer is reused between frames while its size is stable.
    """

    def __init__(self):
        self.surface = None
        self.frames_rendered = 0

    def render(self, surface_size, frame, stream_active, overlay, state, opacity):
        try:
            surface = self._clear(surface_size)
            if frame is not None and stream_active:
                self._draw_video(surface, frame)
            if overlay is not None:
                self._draw_overlay(surface, overlay, state, parse_opacity(opacity))
        except Exception as e:
            raise RenderFailure(f"draw failed: {e}") from e
        self.frames_rendered += 1
        return surface

    def _clear(self, surface_size):
        w, h = surface_size
        if self.surface is None or self.surface.shape[:2] != (h, w):
            self.surface = np.zeros((h, w, 3), dtype=np.uint8)
        else:
            self.surface.fill(0)
        return self.surface

    @staticmethod
    def _draw_video(surface, frame):
        h, w = surface.shape[:2]
        if frame.ndim == 2:
            frame = cv2.cvtColor(frame, cv2.COLOR_GRAY2BGR)
        elif frame.shape[2] == 4:
            frame = cv2.cvtColor(frame, cv2.COLOR_BGRA2BGR)
        surface[:] = cv2.resize(frame, (w, h), interpolation=cv2.INTER_LINEAR)

    @staticmethod
    def _draw_overlay(surface, overlay, state, opacity):
        if opacity <= 0.0:
            return
        h, w = surface.shape[:2]
        m = overlay_matrix(state, (overlay.width, overlay.height))

        warped = cv2.warpAffine(
            overlay.pixels,
            m,
            (w, h),
            flags=cv2.INTER_LINEAR,
            borderMode=cv2.BORDER_CONSTANT,
            borderValue=0,
        )
        alpha = cv2.warpAffine(
            overlay.alpha,
            m,
            (w, h),
            flags=cv2.INTER_LINEAR,
            borderMode=cv2.BORDER_CONSTANT,
            borderValue=0,
        )
        alpha *= opacity
        a = alpha[..., None]

        blended = surface.astype(np.float32) * (1.0 - a) + warped.astype(np.float32) * a
        np.copyto(surface, np.clip(blended + 0.5, 0, 255).astype(np.uint8))
