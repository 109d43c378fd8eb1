import itertools
import logging

from OverlayErrors import RenderFailure

log = logging.getLogger("SCHED")

STOPPED = "stopped"
RUNNING = "running"
SUSPENDED = "suspended"


class RefreshClock:
    """
    Display-refresh callback registry, the host loop's requestAnimationFrame.

    request() queues a callback for the next refresh, fire() runs the
    callbacks that were queued before it was called. Callbacks requested
    while firing wait for the following refresh, so nothing ever catches up
    on missed frames.
    """

    def __init__(self):
        self._callbacks = {}
        self._ids = itertools.count(1)

    def request(self, callback):
        handle = next(self._ids)
        self._callbacks[handle] = callback
        return handle

    def cancel(self, handle):
        self._callbacks.pop(handle, None)

    @property
    def pending(self):
        return len(self._callbacks)

    def fire(self):
        due = self._callbacks
        self._callbacks = {}
        for callback in due.values():
            callback()
        return len(due)


class RenderScheduler:
    """
    Drives `tick` once per refresh while running.

        stopped -> running     start()            (stream is playing)
        running -> suspended   set_visible(False)
        suspended -> running   set_visible(True)  (one tick requested at once)
        * -> stopped           stop() or any exception inside a tick

    stopped is terminal for the loop; on_stop runs exactly once.
    """

    def __init__(self, tick, clock, on_stop=None):
        self.tick = tick
        self.clock = clock
        self.on_stop = on_stop
        self.state = STOPPED
        self.visible = True
        self.ticks = 0
        self.failure = None
        self._handle = None
        self._finished = False

    @property
    def running(self):
        return self.state == RUNNING

    def start(self):
        if self._finished:
            log.debug("start() ignored, loop already torn down")
            return
        if self.state != STOPPED:
            return
        self.state = RUNNING if self.visible else SUSPENDED
        log.info(f"render loop {self.state}")
        if self.state == RUNNING:
            self._schedule()

    def set_visible(self, visible):
        self.visible = bool(visible)
        if self.state == RUNNING and not self.visible:
            self.state = SUSPENDED
            self._cancel()
            log.info("render loop suspended (hidden)")
        elif self.state == SUSPENDED and self.visible:
            self.state = RUNNING
            log.info("render loop resumed")
            self._schedule()

    def stop(self, reason="teardown"):
        if self._finished:
            return
        self._finished = True
        self.state = STOPPED
        self._cancel()
        log.info(f"render loop stopped ({reason})")
        if self.on_stop is not None:
            self.on_stop()

    # ---------- internals ----------
    def _schedule(self):
        if self._handle is None:
            self._handle = self.clock.request(self._run_tick)

    def _cancel(self):
        if self._handle is not None:
            self.clock.cancel(self._handle)
            self._handle = None

    def _run_tick(self):
        self._handle = None
        if self.state == STOPPED:
            return
        try:
            self.tick()
        except RenderFailure as e:
            self._fail(e)
            return
        except Exception as e:
            failure = RenderFailure(f"tick failed: {e!r}")
            failure.__cause__ = e
            self._fail(failure)
            return
        self.ticks += 1
        if self.state == RUNNING:
            self._schedule()

    def _fail(self, failure):
        self.failure = failure
        log.exception(f"render failure, stopping loop: {failure}")
        self.stop(reason="render failure")
