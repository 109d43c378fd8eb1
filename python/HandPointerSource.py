import logging

import cv2
import mediapipe as mp

from PointerStream import pinch_pointers

log = logging.getLogger("HANDS")


class HandPointerSource:
    """
    MediaPipe Hands on camera frames; each pinching hand becomes a pointer.
    Runs inside the capture thread, returns normalized (x, y) pointers.
    """

    def __init__(self, cfg):
        self.update_config(cfg)
        self.mp_hands = mp.solutions.hands.Hands(
            model_complexity=cfg.get("model_complexity", 0),
            min_detection_confidence=cfg.get("min_detection_confidence", 0.6),
            min_tracking_confidence=cfg.get("min_tracking_confidence", 0.6),
            max_num_hands=cfg.get("max_num_hands", 2),
        )
        log.info("Hand tracking enabled.")

    def update_config(self, cfg):
        self.pinch_threshold = cfg.get("pinch_threshold", 0.05)

    def process_frame(self, frame_bgr):
        # MediaPipe expects RGB in uint8
        rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        result = self.mp_hands.process(rgb)
        if not result.multi_hand_landmarks:
            return []
        hands = [lm.landmark for lm in result.multi_hand_landmarks]
        return pinch_pointers(hands, self.pinch_threshold)

    def close(self):
        self.mp_hands.close()
