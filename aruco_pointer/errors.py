"""Error taxonomy for the pointer session."""


class PointerError(RuntimeError):
    pass


class AcquisitionFailure(PointerError):
    """The camera / pose source could not be opened. Ends the session."""


class TransientFrameError(PointerError):
    """A single frame could not be decoded or processed. The frame is skipped."""


class DegenerateGeometryError(PointerError):
    """The pivot system is too ill-conditioned to trust the solved offset."""

    def __init__(self, message: str, singular_values=None):
        super().__init__(message)
        self.singular_values = singular_values
