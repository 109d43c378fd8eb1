from typing import List, Sequence, Tuple

from helpers import dist, midpoint

Point = Tuple[float, float]

THUMB_TIP = 4
INDEX_TIP = 8


def _xy(entry) -> Point:
    if hasattr(entry, "x") and hasattr(entry, "y"):
        return (float(entry.x), float(entry.y))
    if isinstance(entry, dict):
        return (float(entry.get("x", 0.0)), float(entry.get("y", 0.0)))
    return (float(entry[0]), float(entry[1]))


def pinch_pointers(hands, threshold: float) -> List[Point]:
    """
    One pointer per pinching hand, in normalized [0, 1] coordinates.

    `hands` is a list of landmark sequences (MediaPipe order). A hand is
    "pressed" while its thumb and index tips are closer than `threshold`;
    its pointer sits halfway between the two tips.
    """
    pointers = []
    for landmarks in hands:
        if landmarks is None or len(landmarks) <= INDEX_TIP:
            continue
        thumb = _xy(landmarks[THUMB_TIP])
        index = _xy(landmarks[INDEX_TIP])
        if dist(thumb, index) >= threshold:
            continue
        pointers.append(midpoint(thumb, index))
    return pointers


def to_surface(pointers: Sequence[Point], surface_size) -> List[Point]:
    w, h = surface_size
    return [(x * w, y * h) for x, y in pointers]


class PointerStream:
    """
    Converts a per-frame list of pointer positions into down/move/up calls
    on a sink (the OverlayController), based on the change in pointer count.

    Two-pointer samples are re-ordered to match the previous frame, since
    hand detectors do not keep a stable hand order and a swap would read as
    a half-turn rotation.
    """

    def __init__(self, sink):
        self.sink = sink
        self.previous: List[Point] = []

    @property
    def active(self) -> bool:
        return bool(self.previous)

    def feed(self, pointers: Sequence[Point]) -> None:
        current = list(pointers)
        prev = self.previous
        if len(current) == 2 and len(prev) == 2:
            current = self._match_order(prev, current)

        if len(current) > len(prev):
            self.sink.handle_pointer_down(current)
        elif len(current) < len(prev):
            self.sink.handle_pointer_up(current)
        elif current:
            self.sink.handle_pointer_move(current)
        self.previous = current

    def reset(self) -> None:
        if self.previous:
            self.sink.handle_pointer_up([])
        self.previous = []

    @staticmethod
    def _match_order(prev: Sequence[Point], current: List[Point]) -> List[Point]:
        straight = dist(prev[0], current[0]) + dist(prev[1], current[1])
        swapped = dist(prev[0], current[1]) + dist(prev[1], current[0])
        if swapped < straight:
            return [current[1], current[0]]
        return current
