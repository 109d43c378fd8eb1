import logging
import math

from GestureTracker import Pan, RotateBy, ScaleBy, SkewBy
from helpers import clamp

log = logging.getLogger("GESTURE")

MIN_SCALE = 0.1
MAX_SCALE = 3.0
MAX_SKEW = 0.5
FIT_FRACTION = 0.8


class TransformState:
    """
    Placement of the overlay image on the render surface.

    translation is the image center in surface pixels, scale is uniform,
    rotation is in radians and skew holds the two shear coefficients.
    Every mutation goes through apply()/fit()/rescale()/reset() so a render
    tick never observes a half-updated record.
    """

    def __init__(self):
        self.reset()

    def reset(self):
        self.translation = (0.0, 0.0)
        self.scale = 1.0
        self.rotation = 0.0
        self.skew = (0.0, 0.0)

    def snapshot(self):
        return {
            "translation": list(self.translation),
            "scale": self.scale,
            "rotation": self.rotation,
            "skew": list(self.skew),
        }

    def __repr__(self):
        tx, ty = self.translation
        kx, ky = self.skew
        return (
            f"TransformState(t=({tx:.1f}, {ty:.1f}), s={self.scale:.3f}, "
            f"r={self.rotation:.3f}, k=({kx:.3f}, {ky:.3f}))"
        )

    # ---------- deltas ----------
    def apply(self, delta, surface_size):
        """Apply one gesture delta. Non-finite deltas are dropped."""
        if not all(math.isfinite(v) for v in delta):
            log.debug(f"dropping non-finite delta {delta!r}")
            return

        if isinstance(delta, Pan):
            x, y = self.translation
            self.translation = self._clamp_point(
                (x + delta.dx, y + delta.dy), surface_size
            )
        elif isinstance(delta, ScaleBy):
            self.scale = clamp(self.scale * delta.ratio, MIN_SCALE, MAX_SCALE)
        elif isinstance(delta, RotateBy):
            self.rotation += delta.d_radians
        elif isinstance(delta, SkewBy):
            kx, ky = self.skew
            self.skew = (
                clamp(kx + delta.dx, -MAX_SKEW, MAX_SKEW),
                clamp(ky + delta.dy, -MAX_SKEW, MAX_SKEW),
            )
        else:
            raise TypeError(f"unknown delta type {type(delta).__name__}")

    # ---------- fit / viewport ----------
    @staticmethod
    def fit_scale(image_size, surface_size):
        iw, ih = image_size
        sw, sh = surface_size
        return min(FIT_FRACTION * sw / iw, FIT_FRACTION * sh / ih)

    def fit(self, image_size, surface_size):
        """Center the image and size it to 80% of the surface."""
        iw, ih = image_size
        if iw <= 0 or ih <= 0:
            raise ValueError(f"invalid image size {iw}x{ih}")
        sw, sh = surface_size
        self.translation = (sw / 2.0, sh / 2.0)
        self.scale = self.fit_scale(image_size, surface_size)
        self.rotation = 0.0
        self.skew = (0.0, 0.0)

    def rescale(self, old_size, new_size):
        """Move translation proportionally to a new surface size."""
        ow, oh = old_size
        nw, nh = new_size
        if ow <= 0 or oh <= 0:
            self.translation = self._clamp_point(self.translation, new_size)
            return
        x, y = self.translation
        self.translation = self._clamp_point((x * nw / ow, y * nh / oh), new_size)

    @staticmethod
    def _clamp_point(point, surface_size):
        w, h = surface_size
        return (clamp(point[0], 0.0, float(w)), clamp(point[1], 0.0, float(h)))
