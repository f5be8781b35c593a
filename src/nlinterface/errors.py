"""Error taxonomy for the voice dialog engine."""


class DialogError(RuntimeError):
    """Base class for failures raised by the voice dialog stack."""


class RecognitionUnavailable(DialogError):
    """Raised when the recognition engine cannot be initialized or started."""


class NarrationUnavailable(DialogError):
    """Raised when the narration engine cannot be initialized or used."""


class CaptureInProgressError(DialogError):
    """Raised when a capture session is requested while another is listening."""
