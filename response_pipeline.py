"""Transcribe → augment → respond → publish, with conversation continuity."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Optional

from config import ASSISTANT_INSTRUCTIONS
from errors import (
    EMPTY_TRANSCRIPT,
    ERROR_MESSAGES,
    RESPONSE_FAILED,
    TRANSCRIPTION_FAILED,
    ImageUnsupported,
    MicGptError,
    format_error,
)
from interfaces import ClipboardSink, Notifier, Responder, Transcriber
from logger import get_logger
from models import CaptureResult, FlowKind, PipelineOutcome, ResponderReply

logger = get_logger(__name__)

TRANSCRIPT_PREFIX = "🎤 Transcript:\n\n"
REPLY_PREFIX = "🤖 Reply:\n\n"
PROCESSING_TEXT = "🎤 Processing audio..."


@dataclass(frozen=True)
class FlowSpec:
    kind: FlowKind
    instructions: str = ""
    translate_audio: bool = False


class ConversationState:
    """Last backend response id; written only after a successful call."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last_response_id: Optional[str] = None

    @property
    def last_response_id(self) -> Optional[str]:
        with self._lock:
            return self._last_response_id

    def record(self, response_id: Optional[str]) -> None:
        if not response_id:
            return
        with self._lock:
            self._last_response_id = response_id


class ResponsePipeline:
    def __init__(
        self,
        transcriber: Transcriber,
        responder: Responder,
        notifier: Notifier,
        clipboard: ClipboardSink,
        conversation: Optional[ConversationState] = None,
        default_instructions: str = ASSISTANT_INSTRUCTIONS,
    ) -> None:
        self._transcriber = transcriber
        self._responder = responder
        self._notifier = notifier
        self._clipboard = clipboard
        self.conversation = conversation or ConversationState()
        self._default_instructions = default_instructions

    def run(self, capture: CaptureResult, flow: FlowSpec) -> PipelineOutcome:
        """Handle one finished recording. Never raises."""
        outcome = PipelineOutcome()
        self._notify(PROCESSING_TEXT)
        try:
            transcript = self._transcriber.transcribe(capture.audio, translate=flow.translate_audio)
        except Exception as exc:
            return self._report(outcome, exc, TRANSCRIPTION_FAILED)

        transcript = (transcript or "").strip()
        if not transcript:
            logger.info("[%s] empty transcript, responder not called", capture.chord)
            outcome.error_code = EMPTY_TRANSCRIPT
            self._notify(format_error(EMPTY_TRANSCRIPT))
            return outcome

        return self._respond(outcome, transcript, capture.image, flow)

    def run_text(self, text: str, flow: FlowSpec, image: Optional[Any] = None) -> PipelineOutcome:
        """Send already-available text (e.g. OCR output) through the respond stage."""
        text = text.strip()
        if not text:
            outcome = PipelineOutcome(error_code=EMPTY_TRANSCRIPT)
            self._notify(format_error(EMPTY_TRANSCRIPT))
            return outcome
        return self._respond(PipelineOutcome(), text, image, flow)

    def _respond(
        self,
        outcome: PipelineOutcome,
        transcript: str,
        image: Optional[Any],
        flow: FlowSpec,
    ) -> PipelineOutcome:
        outcome.transcript = transcript
        self._clipboard.write(transcript)
        self._notify(TRANSCRIPT_PREFIX + transcript)

        instructions = flow.instructions or self._default_instructions
        try:
            reply = self._call_responder(transcript, image, instructions)
        except Exception as exc:
            return self._report(outcome, exc, RESPONSE_FAILED)

        self.conversation.record(reply.response_id)
        outcome.reply = reply.text
        self._clipboard.write(reply.text)
        self._notify(REPLY_PREFIX + reply.text)
        return outcome

    def _call_responder(self, text: str, image: Optional[Any], instructions: str) -> ResponderReply:
        previous = self.conversation.last_response_id
        if image is not None and getattr(self._responder, "supports_images", False):
            try:
                return self._responder.respond(
                    text,
                    image=image,
                    instructions=instructions,
                    previous_response_id=previous,
                )
            except ImageUnsupported as exc:
                logger.info("Responder rejected the image, retrying text-only: %s", exc)
        elif image is not None:
            logger.info("Responder is text-only, dropping the captured image")
        if image is not None:
            instructions = self._default_instructions
        return self._responder.respond(
            text,
            image=None,
            instructions=instructions,
            previous_response_id=previous,
        )

    def _report(self, outcome: PipelineOutcome, exc: Exception, fallback_code: str) -> PipelineOutcome:
        code = fallback_code
        if isinstance(exc, MicGptError) and type(exc).code in ERROR_MESSAGES:
            code = type(exc).code
        logger.warning(
            "Pipeline step failed (%s, %s): %s",
            code,
            getattr(exc, "code", type(exc).__name__),
            exc,
        )
        outcome.error_code = code
        self._notify(format_error(code, str(exc)))
        return outcome

    def _notify(self, text: str) -> None:
        try:
            self._notifier.enqueue(text)
        except Exception:
            logger.exception("Failed to enqueue notification")
