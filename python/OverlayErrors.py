class OverlayError(Exception):
    """Base class for every error raised by the overlay core."""


class InputGeometryError(OverlayError):
    """Degenerate pointer configuration, e.g. two pointers on the same spot."""


class RenderFailure(OverlayError):
    """The draw step of a render tick failed. Fatal to the render loop only."""


class OverlayLoadFailure(OverlayError):
    """An overlay image could not be read or decoded."""

    def __init__(self, path, reason):
        super().__init__(f"cannot load overlay '{path}': {reason}")
        self.path = path
        self.reason = reason


class ViewportDegenerate(OverlayError):
    """Video intrinsic size is unknown or zero (metadata not loaded yet)."""


class CameraUnavailable(OverlayError):
    """The capture device could not be opened."""
