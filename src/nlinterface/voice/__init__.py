"""Voice dialog engine: capture, decoding, dialog and narration boundaries."""

from .decoder import Command, CommandDecoder
from .dialogue import DialogContext, DialogEngine, DialogState, ResolvedAction, ResolvedCommand
from .input import (
    CaptureConfig,
    CaptureOutcome,
    CaptureRequest,
    CaptureRequestKind,
    CaptureResult,
    CaptureSession,
    CaptureState,
    SpeechCaptureController,
)
from .interfaces import NarrationEngine, RecognitionEngine
from .output import NarrationConfig, SpeechOutputQueue, Utterance, UtteranceMode, UtteranceOutcome
from .phrases import PhraseBook

__all__ = [
    "CaptureConfig",
    "CaptureOutcome",
    "CaptureRequest",
    "CaptureRequestKind",
    "CaptureResult",
    "CaptureSession",
    "CaptureState",
    "Command",
    "CommandDecoder",
    "DialogContext",
    "DialogEngine",
    "DialogState",
    "NarrationConfig",
    "NarrationEngine",
    "PhraseBook",
    "RecognitionEngine",
    "ResolvedAction",
    "ResolvedCommand",
    "SpeechCaptureController",
    "SpeechOutputQueue",
    "Utterance",
    "UtteranceMode",
    "UtteranceOutcome",
]
