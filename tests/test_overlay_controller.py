import cv2
import numpy as np
import pytest

from GestureTracker import DRAGGING, IDLE, PINCHING
from OpacityControl import OpacityControl
from OverlayController import OverlayController
from OverlayErrors import RenderFailure
from RenderScheduler import RUNNING, STOPPED, SUSPENDED


class RecordingPublisher:
    def __init__(self):
        self.deltas = []
        self.snapshots = []

    def publish_delta(self, delta, snapshot):
        self.deltas.append(delta)

    def publish_snapshot(self, event, snapshot):
        self.snapshots.append(event)


@pytest.fixture
def presented():
    return []


@pytest.fixture
def controller(fake_video, manual_clock, presented):
    c = OverlayController(
        fake_video,
        (1600, 1200),
        opacity=OpacityControl(0.5),
        present=presented.append,
        viewport_clock=manual_clock,
    )
    c.on_stream_playing()
    return c


def test_stream_playing_sizes_surface_and_starts_loop(controller):
    # 160x90 video in a 1600x1200 window
    assert controller.surface_size == (1600, 900)
    assert controller.tracker.surface_size == (1600, 900)
    assert controller.scheduler.state == RUNNING


def test_each_refresh_renders_one_frame(controller, presented):
    controller.clock.fire()
    controller.clock.fire()
    assert len(presented) == 2
    assert presented[-1].shape == (900, 1600, 3)


def test_load_overlay_fits_and_centers(controller, overlay_factory):
    controller.load_overlay_image(overlay_factory(200, 100))
    assert controller.state.translation == (800.0, 450.0)
    assert controller.state.scale == pytest.approx(6.4)


def test_drag_moves_overlay(controller, overlay_factory):
    controller.load_overlay_image(overlay_factory(200, 100))
    controller.handle_pointer_down([(800, 450)])
    assert controller.tracker.mode == DRAGGING
    controller.handle_pointer_move([(820, 460)])
    controller.handle_pointer_move([(830, 470)])
    assert controller.state.translation == (830.0, 470.0)
    controller.handle_pointer_up([])
    assert controller.tracker.mode == IDLE


def test_pointer_input_without_overlay_changes_nothing(controller):
    controller.handle_pointer_down([(10, 10)])
    controller.handle_pointer_move([(50, 50)])
    assert controller.state.translation == (0.0, 0.0)


def test_pinch_scales_rotates_and_skews(controller, overlay_factory):
    controller.load_overlay_image(overlay_factory(1600, 900))
    assert controller.state.scale == pytest.approx(0.8)
    controller.handle_pointer_down([(400, 300)])
    controller.handle_pointer_down([(400, 300), (500, 300)])
    assert controller.tracker.mode == PINCHING
    controller.handle_pointer_move([(400, 300), (500, 300)])
    assert controller.state.scale == pytest.approx(0.8)
    controller.handle_pointer_move([(400, 300), (400, 450)])
    assert controller.state.scale == pytest.approx(1.2)
    assert controller.state.rotation == pytest.approx(np.pi / 2)
    assert controller.state.skew[0] == pytest.approx(-50 / 1600)
    assert controller.state.skew[1] == pytest.approx(75 / 900)


def test_clear_overlay_resets_state(controller, overlay_factory):
    controller.load_overlay_image(overlay_factory(200, 100))
    controller.handle_pointer_down([(800, 450)])
    controller.clear_overlay()
    assert not controller.has_overlay
    assert controller.state.translation == (0.0, 0.0)
    assert controller.state.scale == 1.0
    assert controller.tracker.mode == IDLE


def test_refit_restores_fit(controller, overlay_factory):
    controller.load_overlay_image(overlay_factory(200, 100))
    fitted = controller.state.snapshot()
    controller.handle_pointer_down([(800, 450)])
    controller.handle_pointer_move([(100, 100)])
    controller.refit_overlay()
    assert controller.state.snapshot() == fitted


def test_failed_load_leaves_previous_overlay(controller, overlay_factory, tmp_path):
    image = overlay_factory(200, 100)
    controller.load_overlay_image(image)
    controller.handle_pointer_down([(800, 450)])
    controller.handle_pointer_move([(810, 450)])
    before = controller.state.snapshot()

    bogus = tmp_path / "broken.png"
    bogus.write_bytes(b"definitely not a png")
    assert controller.load_overlay_from_path(str(bogus)) is False
    assert controller.overlay is image
    assert controller.state.snapshot() == before


def test_load_from_path(controller, tmp_path):
    path = tmp_path / "plan.png"
    cv2.imwrite(str(path), np.full((50, 100, 3), 200, dtype=np.uint8))
    assert controller.load_overlay_from_path(str(path)) is True
    assert controller.overlay.size == (100, 50)


def test_resize_is_debounced_and_rescales(controller, overlay_factory, manual_clock):
    controller.load_overlay_image(overlay_factory(200, 100))
    controller.handle_resize(2000, 1600)
    controller.poll()
    assert controller.surface_size == (1600, 900)
    manual_clock.advance(0.3)
    controller.poll()
    assert controller.surface_size == (2000, 1125)
    assert controller.tracker.surface_size == (2000, 1125)
    assert controller.state.translation == pytest.approx((1000.0, 562.5))


def test_hidden_page_suspends_rendering(controller, presented):
    controller.clock.fire()
    controller.handle_visibility_change(False)
    assert controller.scheduler.state == SUSPENDED
    for _ in range(5):
        controller.clock.fire()
    assert len(presented) == 1

    controller.handle_visibility_change(True)
    assert controller.clock.pending == 1
    controller.clock.fire()
    assert len(presented) == 2


def test_render_failure_stops_loop_and_releases_camera(controller, fake_video):
    def broken_present(surface):
        raise cv2.error("window gone")

    controller.present = broken_present
    controller.clock.fire()
    assert controller.scheduler.state == STOPPED
    assert isinstance(controller.scheduler.failure, RenderFailure)
    assert fake_video.released == 1
    controller.clock.fire()
    assert controller.clock.pending == 0


def test_teardown_releases_camera_once(controller, fake_video):
    controller.teardown()
    controller.teardown()
    assert fake_video.released == 1


def test_deltas_are_published(fake_video, overlay_factory):
    publisher = RecordingPublisher()
    c = OverlayController(fake_video, (1000, 800), publisher=publisher)
    c.load_overlay_image(overlay_factory(200, 100))
    c.handle_pointer_down([(10, 10)])
    c.handle_pointer_move([(20, 10)])
    c.clear_overlay()
    assert publisher.snapshots == ["fit", "clear"]
    assert len(publisher.deltas) == 1
