import logging
import time
from collections import deque

import cv2

from DeltaPublisher import DeltaPublisher
from OpacityControl import OpacityControl
from OverlayController import OverlayController
from PointerStream import PointerStream, to_surface
from VideoSource import VideoSource
from helpers import ConfigWatcher, draw_hud, draw_pointer_debug

log = logging.getLogger("PY")

KEY_ESC = 27


# --------------------------------------------------------
# MOUSE INPUT
# --------------------------------------------------------
class MousePointer:
    """Left button drag as a single pointer, ignored while hands are pinching."""

    def __init__(self, controller, hand_stream):
        self.controller = controller
        self.hand_stream = hand_stream
        self.down = False
        self.position = None

    def __call__(self, event, x, y, flags, param):
        if self.hand_stream.active:
            return
        if event == cv2.EVENT_LBUTTONDOWN:
            self.down = True
            self.position = (float(x), float(y))
            self.controller.handle_pointer_down([self.position])
        elif event == cv2.EVENT_MOUSEMOVE and self.down:
            self.position = (float(x), float(y))
            self.controller.handle_pointer_move([self.position])
        elif event == cv2.EVENT_LBUTTONUP and self.down:
            self.down = False
            self.position = None
            self.controller.handle_pointer_up([])

    def pointers(self):
        return [self.position] if self.down and self.position else []


# --------------------------------------------------------
# HOST LOOP
# --------------------------------------------------------
class OverlayApp:
    def __init__(self, cfg, config_path="config.json", image_path=None, hands_enabled=True):
        self.cfg = cfg
        self.window = cfg["window"]["name"]
        self.image_path = image_path or cfg["overlay"].get("image")
        self.watcher = ConfigWatcher(config_path)
        self._file_cfg = self.watcher.get_config()
        self.debug_cfg = cfg.get("debug", {})
        self.render_times = deque(maxlen=self.debug_cfg.get("fps_window", 20))

        self.hand_source = None
        if hands_enabled and cfg["hands"].get("enabled", True):
            self.hand_source = self._create_hand_source(cfg["hands"])

        self.publisher = None
        if cfg["publisher"].get("enabled", False):
            self.publisher = DeltaPublisher(cfg["publisher"].get("endpoint", "tcp://*:5556"))

        self.video = VideoSource(cfg["camera"], hand_source=self.hand_source)
        self.opacity = OpacityControl(cfg["overlay"].get("default_opacity", 0.5))
        self.window_size = (cfg["window"]["width"], cfg["window"]["height"])
        self.controller = OverlayController(
            self.video,
            self.window_size,
            opacity=self.opacity,
            present=self.present,
            publisher=self.publisher,
            resize_debounce=cfg["viewport"].get("resize_debounce", 0.25),
        )
        self.video.on_playing.append(self.controller.on_stream_playing)
        self.hand_stream = PointerStream(self.controller)
        self.mouse = MousePointer(self.controller, self.hand_stream)
        self.visible = True

    @staticmethod
    def _create_hand_source(hands_cfg):
        try:
            from HandPointerSource import HandPointerSource
        except ImportError as e:
            log.warning(f"Hand input disabled ({e}); install the 'hands' extra.")
            return None
        return HandPointerSource(hands_cfg)

    # ---------- presenting ----------
    def present(self, surface):
        now = time.time()
        self.render_times.append(now)
        if self.debug_cfg.get("draw_pointers", True):
            draw_pointer_debug(surface, self.hand_stream.previous or self.mouse.pointers())
        if self.debug_cfg.get("show_fps", True):
            draw_hud(surface, self._hud_lines())
        cv2.imshow(self.window, surface)

    def _hud_lines(self):
        fps = 0.0
        if len(self.render_times) > 1:
            span = self.render_times[-1] - self.render_times[0]
            if span > 0:
                fps = (len(self.render_times) - 1) / span
        sample = self.video.current_sample()
        cam_fps = sample.fps if sample is not None else 0.0
        state = self.controller.state
        return [
            f"render {fps:.1f} fps | camera {cam_fps:.1f} fps",
            f"mode: {self.controller.tracker.mode}",
            f"scale {state.scale:.2f} rot {state.rotation:.2f} "
            f"skew ({state.skew[0]:+.2f}, {state.skew[1]:+.2f})",
        ]

    # ---------- per-iteration checks ----------
    def _check_window(self):
        try:
            _, _, w, h = cv2.getWindowImageRect(self.window)
            visible = cv2.getWindowProperty(self.window, cv2.WND_PROP_VISIBLE) >= 1
        except cv2.error:
            return
        if w > 0 and h > 0 and (w, h) != self.window_size:
            self.window_size = (w, h)
            self.controller.handle_resize(w, h)
        if visible != self.visible:
            self.visible = visible
            self.controller.handle_visibility_change(visible)

    def _check_config(self):
        """Apply a changed config file. Only debug flags and hand tuning reload live."""
        cfg = self.watcher.check_reload()
        if cfg is self._file_cfg:
            return
        self._file_cfg = cfg
        self.cfg["debug"] = cfg.get("debug", {})
        self.debug_cfg = self.cfg["debug"]
        hands = cfg.get("hands", {})
        if "pinch_threshold" in hands:
            self.cfg["hands"]["pinch_threshold"] = hands["pinch_threshold"]
        if self.hand_source is not None:
            self.hand_source.update_config(self.cfg["hands"])

    def _feed_hands(self, sample):
        if sample is None or sample.hand_pointers is None:
            return
        self.hand_stream.feed(to_surface(sample.hand_pointers, self.controller.surface_size))

    def _handle_key(self, key):
        """Returns False when the app should quit."""
        if key in (KEY_ESC, ord("q")):
            return False
        if key == ord("r"):
            self.controller.refit_overlay()
        elif key == ord("c"):
            self.controller.clear_overlay()
        elif key == ord("l") and self.image_path:
            if not self.controller.load_overlay_from_path(self.image_path):
                log.error(f"Could not load overlay '{self.image_path}'")
        return True

    # ---------- main ----------
    def run(self):
        cv2.namedWindow(self.window, cv2.WINDOW_NORMAL)
        cv2.resizeWindow(self.window, *self.window_size)
        self.opacity.bind_trackbar(self.window)
        cv2.setMouseCallback(self.window, self.mouse)

        if self.image_path and not self.controller.load_overlay_from_path(self.image_path):
            log.error(f"Could not load overlay '{self.image_path}'")

        try:
            self.video.open()
            log.info("Loop started. ESC/q quit, r refit, c clear, l reload image.")
            while True:
                self._feed_hands(self.video.poll())
                self._check_window()
                self._check_config()
                self.controller.poll()
                self.controller.clock.fire()

                if self.controller.scheduler.failure is not None:
                    log.error("Rendering stopped after a failure.")
                    break

                key = cv2.waitKey(1) & 0xFF
                if key != 0xFF and not self._handle_key(key):
                    break
        except KeyboardInterrupt:
            pass
        finally:
            self.shutdown()

    def shutdown(self):
        self.controller.teardown()
        if self.hand_source is not None:
            self.hand_source.close()
        if self.publisher is not None:
            self.publisher.close()
        cv2.destroyAllWindows()
        log.info("Shutdown complete.")


def main(cfg, config_path="config.json", image_path=None, hands_enabled=True):
    OverlayApp(cfg, config_path, image_path=image_path, hands_enabled=hands_enabled).run()
