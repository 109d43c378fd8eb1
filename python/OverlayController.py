import logging

import cv2

from Compositor import Compositor
from GestureTracker import GestureTracker
from ImageLoader import load_overlay_image
from OpacityControl import OpacityControl
from OverlayErrors import OverlayLoadFailure, RenderFailure
from RenderScheduler import RefreshClock, RenderScheduler
from TransformState import TransformState
from ViewportManager import DEFAULT_DEBOUNCE, ViewportManager

log = logging.getLogger("PY")


class OverlayController:
    """
    Single owner of the overlay core state.

    Host events (pointer, resize, visibility, image load) enter through the
    handle_* / load_* methods; gesture deltas are applied to TransformState
    in one place (_apply), and render_tick() only reads state.

    `video` must provide current_frame(), intrinsic_size(), is_active() and
    release(). `present` receives each rendered surface (e.g. cv2.imshow).
    """

    def __init__(
        self,
        video,
        window_size,
        opacity=None,
        clock=None,
        present=None,
        publisher=None,
        resize_debounce=DEFAULT_DEBOUNCE,
        viewport_clock=None,
    ):
        self.video = video
        self.opacity = opacity or OpacityControl()
        self.present = present
        self.publisher = publisher
        self.overlay = None

        self.state = TransformState()
        viewport_kwargs = {"debounce": resize_debounce}
        if viewport_clock is not None:
            viewport_kwargs["clock"] = viewport_clock
        self.viewport = ViewportManager(self.state, window_size, **viewport_kwargs)
        self.tracker = GestureTracker(self.viewport.surface_size)
        self.compositor = Compositor()
        self.clock = clock or RefreshClock()
        self.scheduler = RenderScheduler(self.render_tick, self.clock, on_stop=self._release_video)
        self.last_surface = None

    @property
    def surface_size(self):
        return self.viewport.surface_size

    @property
    def has_overlay(self):
        return self.overlay is not None

    # ---------- pointer input ----------
    def handle_pointer_down(self, pointers):
        self._apply(self.tracker.pointer_down(pointers, self.has_overlay))

    def handle_pointer_move(self, pointers):
        self._apply(self.tracker.pointer_move(pointers))

    def handle_pointer_up(self, pointers):
        self._apply(self.tracker.pointer_up(pointers))

    def _apply(self, deltas):
        if not deltas or self.overlay is None:
            return
        for delta in deltas:
            self.state.apply(delta, self.viewport.surface_size)
            if self.publisher is not None:
                self.publisher.publish_delta(delta, self.state.snapshot())

    # ---------- viewport ----------
    def handle_resize(self, width, height):
        self.viewport.request_resize(width, height)

    def poll(self):
        """Pump debounced work; call once per host loop iteration."""
        if self.viewport.poll():
            self._sync_surface()

    def on_stream_playing(self):
        if self.viewport.on_stream_ready(self.video.intrinsic_size()):
            self._sync_surface()
        self.scheduler.start()

    def _sync_surface(self):
        self.tracker.surface_size = self.viewport.surface_size

    def handle_visibility_change(self, visible):
        self.scheduler.set_visible(visible)

    # ---------- overlay ----------
    def load_overlay_image(self, image):
        self.overlay = image
        self.viewport.has_overlay = True
        self.tracker.reset()
        self.state.fit(image.size, self.viewport.surface_size)
        log.info(f"Overlay fitted: {self.state!r}")
        if self.publisher is not None:
            self.publisher.publish_snapshot("fit", self.state.snapshot())

    def load_overlay_from_path(self, path):
        """Load and fit an image file. On failure nothing changes and False is returned."""
        try:
            image = load_overlay_image(path)
        except OverlayLoadFailure as e:
            log.warning(str(e))
            return False
        self.load_overlay_image(image)
        return True

    def refit_overlay(self):
        if self.overlay is not None:
            self.load_overlay_image(self.overlay)

    def clear_overlay(self):
        self.overlay = None
        self.viewport.has_overlay = False
        self.tracker.reset()
        self.state.reset()
        if self.publisher is not None:
            self.publisher.publish_snapshot("clear", self.state.snapshot())

    # ---------- render ----------
    def render_tick(self):
        surface = self.compositor.render(
            self.viewport.surface_size,
            self.video.current_frame(),
            self.video.is_active(),
            self.overlay,
            self.state,
            self.opacity.current_value(),
        )
        self.last_surface = surface
        if self.present is not None:
            try:
                self.present(surface)
            except cv2.error as e:
                raise RenderFailure(f"present failed: {e}") from e

    def teardown(self):
        self.scheduler.stop(reason="teardown")

    def _release_video(self):
        self.video.release()
