import logging
from typing import List, NamedTuple, Optional, Sequence, Tuple

from OverlayErrors import InputGeometryError
from helpers import angle_of, dist, midpoint

log = logging.getLogger("GESTURE")

Point = Tuple[float, float]

IDLE = "idle"
DRAGGING = "dragging"
PINCHING = "pinching"

# Pointers closer than this (surface pixels) give no usable pinch geometry.
MIN_PINCH_DISTANCE = 1e-6


# ==========================================
# DELTAS
# ==========================================
class Pan(NamedTuple):
    dx: float
    dy: float


class ScaleBy(NamedTuple):
    ratio: float


class RotateBy(NamedTuple):
    d_radians: float


class SkewBy(NamedTuple):
    dx: float
    dy: float


# ==========================================
# SESSION
# ==========================================
class GestureSession:
    """
    Ephemeral record of one multi-pointer interaction.
    Baselines are None until a pinch sample has been seen.
    """

    def __init__(self, mode: str, anchor):
        self.mode = mode
        self.anchor = anchor
        self.last_distance: Optional[float] = None
        self.last_angle: Optional[float] = None
        self.last_midpoint: Optional[Point] = None

    def clear_baseline(self) -> None:
        self.last_distance = None
        self.last_angle = None
        self.last_midpoint = None

    @property
    def has_baseline(self) -> bool:
        return self.last_distance is not None


def pinch_geometry(a: Point, b: Point) -> Tuple[float, float, Point]:
    """Distance, angle and midpoint of a two-pointer pinch."""
    d = dist(a, b)
    if d <= MIN_PINCH_DISTANCE:
        raise InputGeometryError(f"pointers coincide at ({a[0]:.1f}, {a[1]:.1f})")
    return d, angle_of(a, b), midpoint(a, b)


# ==========================================
# TRACKER
# ==========================================
class GestureTracker:
    """
    Turns pointer samples into incremental transform deltas.

    Every handler receives the list of pointers that are active *after*
    the event and returns the deltas it produced (possibly none). Deltas
    are always frame-to-frame, never cumulative from the gesture start.
    """

    def __init__(self, surface_size=(1, 1)):
        self.surface_size = surface_size
        self.session: Optional[GestureSession] = None

    @property
    def mode(self) -> str:
        return self.session.mode if self.session else IDLE

    def reset(self) -> None:
        self.session = None

    # ---------- events ----------
    def pointer_down(self, pointers: Sequence[Point], has_overlay: bool) -> List:
        count = len(pointers)
        if count == 0 or not has_overlay:
            self.session = None
            return []
        if count == 1:
            self._start_drag(pointers[0])
        else:
            self.session = GestureSession(PINCHING, (pointers[0], pointers[1]))
            log.debug("pinch started")
        return []

    def pointer_move(self, pointers: Sequence[Point]) -> List:
        session = self.session
        if session is None or not pointers:
            return []

        if session.mode == DRAGGING:
            if len(pointers) != 1:
                # Missed a down event; treat the new count as a fresh gesture.
                return self._switch(pointers)
            x, y = pointers[0]
            ax, ay = session.anchor
            session.anchor = (x, y)
            return [Pan(x - ax, y - ay)]

        if len(pointers) < 2:
            return self._switch(pointers)
        return self._pinch_sample(session, pointers[0], pointers[1])

    def pointer_up(self, pointers: Sequence[Point]) -> List:
        if self.session is None:
            return []
        if not pointers:
            log.debug(f"{self.session.mode} ended")
            self.session = None
            return []
        return self._switch(pointers)

    # ---------- internals ----------
    def _start_drag(self, pointer: Point) -> None:
        self.session = GestureSession(DRAGGING, (pointer[0], pointer[1]))
        log.debug("drag started")

    def _switch(self, pointers: Sequence[Point]) -> List:
        if len(pointers) == 1:
            self._start_drag(pointers[0])
        else:
            self.session = GestureSession(PINCHING, (pointers[0], pointers[1]))
        return []

    def _pinch_sample(self, session: GestureSession, a: Point, b: Point) -> List:
        try:
            d, ang, mid = pinch_geometry(a, b)
        except InputGeometryError as e:
            log.debug(f"pinch sample skipped: {e}")
            session.clear_baseline()
            return []

        deltas = []
        if session.has_baseline:
            if session.last_distance > 0:
                deltas.append(ScaleBy(d / session.last_distance))
            deltas.append(RotateBy(ang - session.last_angle))
            if session.last_midpoint is not None:
                w, h = self.surface_size
                deltas.append(
                    SkewBy(
                        (mid[0] - session.last_midpoint[0]) / max(w, 1),
                        (mid[1] - session.last_midpoint[1]) / max(h, 1),
                    )
                )

        session.anchor = (a, b)
        session.last_distance = d
        session.last_angle = ang
        session.last_midpoint = mid
        return deltas
