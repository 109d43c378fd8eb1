import logging

import zmq

log = logging.getLogger("NET")


class DeltaPublisher:
    """
    Best-effort ZeroMQ PUB of applied gesture deltas and transform snapshots.
    Subscribers that fall behind simply miss messages; send errors are logged
    and never reach the render loop.
    """

    def __init__(self, endpoint="tcp://*:5556", socket=None):
        self.endpoint = endpoint
        self._context = None
        if socket is None:
            self._context = zmq.Context.instance()
            socket = self._context.socket(zmq.PUB)
            socket.bind(endpoint)
            log.info(f"Publishing deltas on {endpoint}")
        self.socket = socket

    def publish_delta(self, delta, snapshot):
        self._send(
            {
                "type": "delta",
                "delta": type(delta).__name__,
                "values": list(delta),
                "transform": snapshot,
            }
        )

    def publish_snapshot(self, event, snapshot):
        self._send({"type": event, "transform": snapshot})

    def _send(self, payload):
        if self.socket is None:
            return
        try:
            self.socket.send_json(payload, flags=zmq.NOBLOCK)
        except zmq.ZMQError as e:
            log.warning(f"Send failed: {e}")

    def close(self):
        if self.socket is not None:
            self.socket.close(linger=0)
            self.socket = None
