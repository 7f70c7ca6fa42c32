"""
Generation state machine.

Drives one generation session per user action through
IDLE -> ENCODING -> REQUESTING -> SUCCESS | ERROR and exposes the current
session to UI collaborators.

Every generate(), regenerate() or reset() issues a new sequence number. A
session's transitions and result are applied to the observable state only
while its sequence number is still the highest issued, so a slow earlier
request can never overwrite the outcome of a later one. In-flight HTTP calls
are not cancelled; their results are discarded when they arrive.

Listeners receive applied snapshots in the order they were applied, one
delivery at a time. A snapshot whose session has been superseded by the time
it is delivered is dropped, so no listener sees an older session after a
newer one. When a snapshot is applied while another thread (or the same
thread, from inside a listener) is delivering, it is queued and delivered by
that thread.
"""

import threading
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from stickermock.core.client import GenerationClient
from stickermock.core.config import Config, get_config
from stickermock.core.credentials import CredentialStore
from stickermock.core.encoder import EncodedImage, ImageSource, encode_image
from stickermock.core.request_builder import build_request
from stickermock.core.response_parser import parse_response
from stickermock.core.result import Failure, GenerationResult, Success
from stickermock.logging_config import get_logger
from stickermock.utils.exceptions import ErrorKind, SessionError, ValidationError

logger = get_logger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    ENCODING = "encoding"
    REQUESTING = "requesting"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class GenerationSession:
    """Snapshot of one session."""

    sequence_number: int
    state: SessionState
    result: GenerationResult | None = None

    @property
    def in_flight(self) -> bool:
        return self.state in (SessionState.ENCODING, SessionState.REQUESTING)

    @property
    def is_terminal(self) -> bool:
        return self.state in (SessionState.SUCCESS, SessionState.ERROR)


SessionListener = Callable[[GenerationSession], None]
Encoder = Callable[[ImageSource, str | None], EncodedImage]


def _is_missing(image: ImageSource | None) -> bool:
    if image is None:
        return True
    if isinstance(image, (bytes, str)):
        return not image
    return False


class GenerationStateMachine:
    """Runs generation sessions and keeps the latest one observable."""

    def __init__(
        self,
        credentials: CredentialStore,
        client: GenerationClient | None = None,
        config: Config | None = None,
        encoder: Encoder = encode_image,
    ) -> None:
        """
        Args:
            credentials: Source of the API key, read at the start of every session
            client: HTTP client; defaults to GenerationClient(config)
            config: Used only to build the default client
            encoder: Image encoder; defaults to encode_image
        """
        self._credentials = credentials
        self._client = client or GenerationClient(config or get_config())
        self._encoder = encoder
        self._lock = threading.Lock()
        self._sequence = 0
        self._session = GenerationSession(sequence_number=0, state=SessionState.IDLE)
        self._last_inputs: tuple[str, ImageSource, str | None] | None = None
        self._listeners: list[SessionListener] = []
        self._pending: deque[GenerationSession] = deque()
        self._delivering = False

    @property
    def session(self) -> GenerationSession:
        """The current observable session."""
        with self._lock:
            return self._session

    @property
    def can_regenerate(self) -> bool:
        with self._lock:
            return self._last_inputs is not None

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Call listener with every applied session snapshot. Returns an unsubscribe function."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _deliver_pending(self) -> None:
        """Deliver queued snapshots unless another delivery is already running."""
        with self._lock:
            if self._delivering:
                return
            self._delivering = True
        try:
            while True:
                with self._lock:
                    if not self._pending:
                        self._delivering = False
                        return
                    session = self._pending.popleft()
                    listeners = list(self._listeners)
                for listener in listeners:
                    # A listener may have started a newer session
                    with self._lock:
                        current = self._sequence
                    if session.sequence_number != current:
                        logger.debug(
                            "Not delivering superseded session seq=%d state=%s (current seq=%d)",
                            session.sequence_number,
                            session.state.value,
                            current,
                        )
                        break
                    listener(session)
        except BaseException:
            with self._lock:
                self._delivering = False
            raise

    def _start(
        self,
        state: SessionState,
        result: GenerationResult | None = None,
        inputs: tuple[str, ImageSource, str | None] | None = None,
        forget_inputs: bool = False,
    ) -> GenerationSession:
        """Issue a new sequence number and make its first state observable."""
        with self._lock:
            self._sequence += 1
            session = GenerationSession(self._sequence, state, result)
            self._session = session
            if inputs is not None:
                self._last_inputs = inputs
            elif forget_inputs:
                self._last_inputs = None
            self._pending.append(session)
        self._deliver_pending()
        return session

    def _apply(
        self,
        sequence_number: int,
        state: SessionState,
        result: GenerationResult | None = None,
    ) -> GenerationSession:
        """Apply a transition if the session is still current; otherwise discard it."""
        session = GenerationSession(sequence_number, state, result)
        with self._lock:
            current = self._sequence
            if sequence_number == current:
                self._session = session
                self._pending.append(session)
        if sequence_number != current:
            logger.debug(
                "Discarding stale session seq=%d state=%s (current seq=%d)",
                sequence_number,
                state.value,
                current,
            )
            return session
        self._deliver_pending()
        return session

    def _finish(self, sequence_number: int, result: GenerationResult) -> GenerationSession:
        if isinstance(result, Success):
            logger.info("Session %d succeeded media_type=%s", sequence_number, result.media_type)
            return self._apply(sequence_number, SessionState.SUCCESS, result)
        logger.info(
            "Session %d failed kind=%s: %s", sequence_number, result.kind.value, result.message
        )
        return self._apply(sequence_number, SessionState.ERROR, result)

    def _checked_inputs(
        self, prompt: str | None, image: ImageSource | None
    ) -> tuple[str, ImageSource]:
        """
        Return prompt and image once every precondition holds.

        Raises:
            ValidationError: If the prompt, image or API key is missing
        """
        if prompt is None or not prompt.strip():
            raise ValidationError("Please enter a prompt describing the scene.", field="prompt")
        if image is None or _is_missing(image):
            raise ValidationError("Please upload an image.", field="image")
        credential = self._credentials.get()
        if credential is None or not credential.key_value.strip():
            raise ValidationError(
                "Please configure your Gemini API key in settings.", field="api_key"
            )
        return prompt, image

    def generate(
        self,
        prompt: str | None,
        image: ImageSource | None,
        media_type: str | None = None,
    ) -> GenerationSession:
        """
        Run a new session for prompt and image, superseding any previous one.

        Missing prompt, image or API key ends the session in ERROR(VALIDATION)
        without any I/O.

        Args:
            prompt: Scene description
            image: Uploaded image (path, bytes or binary file object)
            media_type: Declared media type of the image, if known

        Returns:
            The final snapshot of this session. It is the observable session
            unless a newer session was started meanwhile.
        """
        try:
            prompt_text, source = self._checked_inputs(prompt, image)
        except ValidationError as e:
            session = self._start(SessionState.ERROR, Failure(e.kind, str(e)))
            logger.info("Session %d rejected: %s", session.sequence_number, e)
            return session

        seq = self._start(
            SessionState.ENCODING, inputs=(prompt_text, source, media_type)
        ).sequence_number
        logger.info("Session %d started", seq)

        try:
            encoded = self._encoder(source, media_type)
            request = build_request(prompt_text, encoded)
            self._apply(seq, SessionState.REQUESTING)
            raw = self._client.send(request, self._credentials.get())
        except SessionError as e:
            # Anything else is a bug and propagates
            return self._finish(seq, Failure(e.kind, str(e)))

        return self._finish(seq, parse_response(raw))

    def regenerate(self) -> GenerationSession:
        """Run a new session with the last prompt and image."""
        with self._lock:
            inputs = self._last_inputs
        if inputs is None:
            return self._start(
                SessionState.ERROR,
                Failure(ErrorKind.VALIDATION, "Nothing to regenerate yet."),
            )
        prompt, image, media_type = inputs
        if hasattr(image, "seek"):
            # Stream sources were consumed by the previous encode
            try:
                image.seek(0)
            except (OSError, ValueError) as e:
                logger.debug("Could not rewind image stream: %s", e)
        return self.generate(prompt, image, media_type)

    def reset(self) -> GenerationSession:
        """Return to IDLE, superseding any in-flight session and forgetting the last inputs."""
        session = self._start(SessionState.IDLE, forget_inputs=True)
        logger.debug("Reset to idle seq=%d", session.sequence_number)
        return session


__all__ = ["GenerationSession", "GenerationStateMachine", "SessionListener", "SessionState"]
