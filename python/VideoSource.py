import logging
import threading
import time
from collections import deque
from queue import Empty, Full, Queue

import cv2

from OverlayErrors import CameraUnavailable

log = logging.getLogger("CAM")

# --------------------------------------------------------
# Queue for latest frame only (overwrite when full)
# --------------------------------------------------------
FRAME_QUEUE_MAX = 1


class VideoSample:
    """One captured frame plus whatever ran on it in the capture thread."""

    def __init__(self, frame, timestamp, fps=0.0, hand_pointers=None):
        self.frame = frame
        self.timestamp = timestamp
        self.fps = fps
        self.hand_pointers = hand_pointers


class VideoSource:
    """
    Live camera feed read by a background capture thread.

    The host loop calls poll() once per refresh to adopt the newest sample;
    everything else (current_frame, intrinsic_size, is_active) reads that
    adopted sample, so the core only ever sees state from its own thread.
    `on_playing` callbacks fire once, on the first adopted frame.
    """

    def __init__(self, camera_cfg=None, hand_source=None, capture_factory=cv2.VideoCapture):
        self.cfg = camera_cfg or {}
        self.hand_source = hand_source
        self.capture_factory = capture_factory
        self.on_playing = []

        self._queue = Queue(maxsize=FRAME_QUEUE_MAX)
        self._stop_event = threading.Event()
        self._thread = None
        self._cap = None
        self._sample = None
        self._playing = False
        self._released = False

    # ---------- lifecycle ----------
    def open(self):
        index = self.cfg.get("index", 0)
        cap = self.capture_factory(index)
        if not cap.isOpened():
            raise CameraUnavailable(f"Cannot open camera {index}")
        if "frame_width" in self.cfg:
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.cfg["frame_width"])
        if "frame_height" in self.cfg:
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.cfg["frame_height"])
        self._cap = cap
        self._thread = threading.Thread(target=self._capture_loop, name="capture", daemon=True)
        self._thread.start()
        return self

    def release(self):
        """Stop the capture thread and release the device. Safe to call twice."""
        if self._released:
            return
        self._released = True
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=1.0)
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        log.info("Camera released.")

    # ---------- host-loop side ----------
    def poll(self):
        """Adopt the latest captured sample, if any. Returns it or None."""
        try:
            sample = self._queue.get_nowait()
        except Empty:
            return None
        self._sample = sample
        if not self._playing:
            self._playing = True
            log.info("Stream playing.")
            for callback in list(self.on_playing):
                callback()
        return sample

    def current_frame(self):
        if self._sample is None:
            return None
        return self._sample.frame

    def current_sample(self):
        return self._sample

    def intrinsic_size(self):
        """(width, height) of the stream, or None until the first frame."""
        if self._sample is None:
            return None
        h, w = self._sample.frame.shape[:2]
        return (w, h)

    def is_active(self):
        return self._playing and not self._released

    # ---------- capture thread ----------
    def _publish(self, sample):
        # Drop the older frame so the host always sees the newest one.
        try:
            self._queue.put_nowait(sample)
        except Full:
            try:
                self._queue.get_nowait()
            except Empty:
                pass
            self._queue.put_nowait(sample)

    def _capture_loop(self):
        fps_times = deque(maxlen=20)
        log.info("Capture thread started.")

        while not self._stop_event.is_set():
            ok, frame = self._cap.read()
            if not ok:
                time.sleep(0.01)
                continue
            if self.cfg.get("mirror", False):
                frame = cv2.flip(frame, 1)

            now = time.time()
            fps_times.append(now)
            fps = 0.0
            if len(fps_times) > 1:
                fps = (len(fps_times) - 1) / (fps_times[-1] - fps_times[0])

            hand_pointers = None
            if self.hand_source is not None:
                try:
                    hand_pointers = self.hand_source.process_frame(frame)
                except Exception as e:
                    log.exception(f"Hand tracking failed on frame: {e}")

            self._publish(VideoSample(frame, now, fps, hand_pointers))

        log.info("Capture thread exiting.")
