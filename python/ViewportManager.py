import logging
import time

from OverlayErrors import ViewportDegenerate

log = logging.getLogger("VIEW")

FALLBACK_ASPECT = 16.0 / 9.0
DEFAULT_DEBOUNCE = 0.25


def video_aspect(video_size):
    """Aspect ratio of the video, raising ViewportDegenerate if unknown."""
    if video_size is None:
        raise ViewportDegenerate("video size unknown")
    vw, vh = video_size
    if not vw or not vh or vw <= 0 or vh <= 0:
        raise ViewportDegenerate(f"video size {vw}x{vh}")
    return vw / float(vh)


def compute_surface_size(window_size, video_size):
    """
    Largest rectangle with the video's aspect ratio that fits the window.
    Falls back to 16:9 while the video size is not known.
    """
    ww, wh = window_size
    try:
        aspect = video_aspect(video_size)
    except ViewportDegenerate as e:
        log.debug(f"{e}; using 16:9")
        aspect = FALLBACK_ASPECT

    if ww / float(wh) > aspect:
        h = wh
        w = max(1, int(round(h * aspect)))
    else:
        w = ww
        h = max(1, int(round(w / aspect)))
    return (w, h)


class ViewportManager:
    """
    Tracks the render surface size and keeps TransformState in proportion.

    Resize events are coalesced: request_resize() only records the latest
    window size, poll() applies it once no new request arrived for
    `debounce` seconds. Stream-ready recomputes immediately.
    """

    def __init__(self, state, window_size, debounce=DEFAULT_DEBOUNCE, clock=time.monotonic):
        self.state = state
        self.debounce = debounce
        self.clock = clock
        self.window_size = window_size
        self.video_size = None
        self.surface_size = compute_surface_size(window_size, None)
        self.has_overlay = False
        self._pending = None
        self._deadline = 0.0

    def request_resize(self, width, height):
        if width <= 0 or height <= 0:
            log.debug(f"ignoring degenerate window size {width}x{height}")
            return
        self._pending = (width, height)
        self._deadline = self.clock() + self.debounce

    @property
    def resize_pending(self):
        return self._pending is not None

    def poll(self):
        """Apply a pending resize once the burst has settled. Returns True on change."""
        if self._pending is None or self.clock() < self._deadline:
            return False
        self.window_size = self._pending
        self._pending = None
        return self.recompute()

    def on_stream_ready(self, video_size):
        self.video_size = video_size
        return self.recompute()

    def recompute(self):
        new_size = compute_surface_size(self.window_size, self.video_size)
        old_size = self.surface_size
        if new_size == old_size:
            return False
        self.surface_size = new_size
        if self.has_overlay:
            self.state.rescale(old_size, new_size)
        log.info(f"surface {old_size[0]}x{old_size[1]} -> {new_size[0]}x{new_size[1]}")
        return True
