"""Unit tests for GenerationStateMachine (fake client, no network)."""

import io
import threading
from unittest.mock import patch

import pytest

from conftest import MINIMAL_PNG, image_body, make_response
from stickermock.core.client import GenerationClient, RawResponse
from stickermock.core.credentials import CredentialStore
from stickermock.core.result import Failure, Success
from stickermock.core.state_machine import (
    GenerationSession,
    GenerationStateMachine,
    SessionState,
)
from stickermock.utils.exceptions import ErrorKind, NetworkError, TransportError
from stickermock.utils.storage import MemoryStorage


def _raw(data: str = "AAA", mime_type: str = "image/png") -> RawResponse:
    return RawResponse(status_code=200, body=image_body(data, mime_type), text="", elapsed=0.0)


class FakeClient:
    """Records sends and returns a canned response (or raises a canned error)."""

    def __init__(self, response=None, error: Exception | None = None) -> None:
        self.response = response if response is not None else _raw()
        self.error = error
        self.calls = []

    def send(self, request, credential):
        self.calls.append((request, credential))
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def machine(store, client) -> GenerationStateMachine:
    return GenerationStateMachine(store, client=client)


@pytest.mark.unit
class TestInitialState:
    def test_starts_idle(self, machine):
        session = machine.session
        assert session == GenerationSession(0, SessionState.IDLE)
        assert not session.in_flight
        assert not session.is_terminal
        assert not machine.can_regenerate


@pytest.mark.unit
class TestGenerate:
    def test_success(self, machine, client, png_bytes):
        session = machine.generate("a sticker on a mug", png_bytes)
        assert session.state == SessionState.SUCCESS
        assert session.result == Success("AAA", "image/png")
        assert session.is_terminal
        assert machine.session == session
        assert machine.can_regenerate
        request, credential = client.calls[0]
        assert request.prompt_text == "a sticker on a mug"
        assert request.image_media_type == "image/png"
        assert credential.key_value == "test-key"

    def test_success_from_path(self, machine, png_file):
        assert machine.generate("scene", png_file).state == SessionState.SUCCESS

    def test_each_generate_gets_new_sequence(self, machine, png_bytes):
        first = machine.generate("scene", png_bytes)
        second = machine.generate("scene", png_bytes)
        assert second.sequence_number == first.sequence_number + 1

    def test_credential_read_per_session(self, store, client, png_bytes):
        machine = GenerationStateMachine(store, client=client)
        machine.generate("scene", png_bytes)
        store.set("new-key")
        machine.generate("scene", png_bytes)
        assert [c.key_value for _, c in client.calls] == ["test-key", "new-key"]

    def test_text_only_response_is_malformed(self, store, png_bytes):
        body = {"candidates": [{"content": {"parts": [{"text": "sorry"}]}}]}
        client = FakeClient(RawResponse(200, body, "", 0.0))
        session = GenerationStateMachine(store, client=client).generate("scene", png_bytes)
        assert session.state == SessionState.ERROR
        assert session.result == Failure(ErrorKind.MALFORMED_RESPONSE, "no image returned")


@pytest.mark.unit
class TestValidation:
    @pytest.mark.parametrize(
        "prompt,image,message",
        [
            ("", MINIMAL_PNG, "Please enter a prompt describing the scene."),
            ("   ", MINIMAL_PNG, "Please enter a prompt describing the scene."),
            (None, MINIMAL_PNG, "Please enter a prompt describing the scene."),
            ("scene", None, "Please upload an image."),
            ("scene", b"", "Please upload an image."),
            ("", None, "Please enter a prompt describing the scene."),
        ],
    )
    def test_missing_input_makes_no_call(self, machine, client, prompt, image, message):
        session = machine.generate(prompt, image)
        assert session.state == SessionState.ERROR
        assert session.result == Failure(ErrorKind.VALIDATION, message)
        assert client.calls == []
        assert not machine.can_regenerate

    def test_missing_credential_makes_no_call(self, client, png_bytes):
        machine = GenerationStateMachine(CredentialStore(MemoryStorage()), client=client)
        session = machine.generate("scene", png_bytes)
        assert session.result == Failure(
            ErrorKind.VALIDATION, "Please configure your Gemini API key in settings."
        )
        assert client.calls == []

    def test_non_image_media_type_is_validation(self, machine, client, png_bytes):
        session = machine.generate("scene", png_bytes, media_type="application/pdf")
        assert session.state == SessionState.ERROR
        assert session.result.kind == ErrorKind.VALIDATION
        assert client.calls == []

    def test_validation_error_supersedes_previous_session(self, machine, png_bytes):
        ok = machine.generate("scene", png_bytes)
        rejected = machine.generate("", png_bytes)
        assert rejected.sequence_number > ok.sequence_number
        assert machine.session == rejected


@pytest.mark.unit
class TestErrors:
    def test_missing_file_is_file_read(self, machine, client, tmp_path):
        session = machine.generate("scene", str(tmp_path / "missing.png"))
        assert session.state == SessionState.ERROR
        assert session.result.kind == ErrorKind.FILE_READ
        assert client.calls == []

    def test_undecodable_image_is_file_read(self, machine, client):
        session = machine.generate("scene", b"definitely not an image")
        assert session.result.kind == ErrorKind.FILE_READ
        assert client.calls == []

    def test_network_error(self, store, png_bytes):
        client = FakeClient(error=NetworkError("quota exceeded", status_code=429))
        session = GenerationStateMachine(store, client=client).generate("scene", png_bytes)
        assert session.result == Failure(ErrorKind.NETWORK, "quota exceeded")

    def test_transport_error(self, store, png_bytes):
        client = FakeClient(error=TransportError("Request timed out after 30 seconds."))
        session = GenerationStateMachine(store, client=client).generate("scene", png_bytes)
        assert session.result == Failure(ErrorKind.TRANSPORT, "Request timed out after 30 seconds.")

    def test_429_through_real_client(self, store, config, png_bytes):
        response = make_response(429, {"error": {"message": "quota exceeded"}})
        machine = GenerationStateMachine(store, client=GenerationClient(config))
        with patch("stickermock.core.client.requests.post", return_value=response) as m:
            session = machine.generate("scene", png_bytes)
        assert m.call_count == 1
        assert session.state == SessionState.ERROR
        assert session.result == Failure(ErrorKind.NETWORK, "quota exceeded")


@pytest.mark.unit
class TestRegenerateAndReset:
    def test_regenerate_without_inputs(self, machine, client):
        session = machine.regenerate()
        assert session.result == Failure(ErrorKind.VALIDATION, "Nothing to regenerate yet.")
        assert client.calls == []

    def test_regenerate_reuses_last_inputs(self, machine, client, png_bytes):
        machine.generate("a mug", png_bytes)
        session = machine.regenerate()
        assert session.state == SessionState.SUCCESS
        assert len(client.calls) == 2
        assert client.calls[1][0] == client.calls[0][0]

    def test_regenerate_after_failure(self, store, png_bytes):
        client = FakeClient(error=NetworkError("boom", status_code=500))
        machine = GenerationStateMachine(store, client=client)
        machine.generate("a mug", png_bytes)
        client.error = None
        assert machine.regenerate().state == SessionState.SUCCESS

    def test_regenerate_rewinds_stream(self, machine, client):
        stream = io.BytesIO(MINIMAL_PNG)
        machine.generate("a mug", stream)
        assert machine.regenerate().state == SessionState.SUCCESS
        assert client.calls[0][0].image_b64 == client.calls[1][0].image_b64

    def test_reset_returns_to_idle(self, machine, png_bytes):
        done = machine.generate("a mug", png_bytes)
        session = machine.reset()
        assert session.state == SessionState.IDLE
        assert session.result is None
        assert session.sequence_number > done.sequence_number
        assert not machine.can_regenerate


class BlockingClient:
    """Blocks sends for the prompt "first" until released."""

    def __init__(self) -> None:
        self.first_sent = threading.Event()
        self.release_first = threading.Event()

    def send(self, request, credential):
        if request.prompt_text == "first":
            self.first_sent.set()
            assert self.release_first.wait(timeout=5)
            return _raw("FIRSTIMG")
        return _raw("SECOND")


def _run_first_in_thread(machine: GenerationStateMachine, client: BlockingClient, image):
    outcome = {}

    def run():
        outcome["session"] = machine.generate("first", image)

    thread = threading.Thread(target=run)
    thread.start()
    assert client.first_sent.wait(timeout=5)
    return thread, outcome


@pytest.mark.unit
class TestStaleResults:
    def test_late_response_is_discarded(self, store, png_bytes):
        client = BlockingClient()
        machine = GenerationStateMachine(store, client=client)
        thread, outcome = _run_first_in_thread(machine, client, png_bytes)

        second = machine.generate("second", png_bytes)
        assert second.result == Success("SECOND", "image/png")

        client.release_first.set()
        thread.join(timeout=5)

        assert outcome["session"].result == Success("FIRSTIMG", "image/png")
        assert outcome["session"].sequence_number < second.sequence_number
        assert machine.session == second

    def test_reset_discards_in_flight_result(self, store, png_bytes):
        client = BlockingClient()
        machine = GenerationStateMachine(store, client=client)
        thread, _ = _run_first_in_thread(machine, client, png_bytes)
        assert machine.session.state == SessionState.REQUESTING

        idle = machine.reset()
        client.release_first.set()
        thread.join(timeout=5)

        assert machine.session == idle
        assert machine.session.state == SessionState.IDLE

    def test_stale_session_not_notified(self, store, png_bytes):
        client = BlockingClient()
        machine = GenerationStateMachine(store, client=client)
        thread, _ = _run_first_in_thread(machine, client, png_bytes)
        second = machine.generate("second", png_bytes)

        seen: list[GenerationSession] = []
        machine.subscribe(seen.append)
        client.release_first.set()
        thread.join(timeout=5)

        assert seen == []
        assert machine.session == second


@pytest.mark.unit
class TestListeners:
    def test_listener_sees_transitions(self, machine, png_bytes):
        seen: list[GenerationSession] = []
        machine.subscribe(seen.append)
        machine.generate("scene", png_bytes)
        assert [s.state for s in seen] == [
            SessionState.ENCODING,
            SessionState.REQUESTING,
            SessionState.SUCCESS,
        ]
        assert len({s.sequence_number for s in seen}) == 1

    def test_unsubscribe(self, machine, png_bytes):
        seen: list[GenerationSession] = []
        unsubscribe = machine.subscribe(seen.append)
        unsubscribe()
        unsubscribe()
        machine.generate("scene", png_bytes)
        assert seen == []

    def test_listener_sees_validation_error(self, machine):
        seen: list[GenerationSession] = []
        machine.subscribe(seen.append)
        machine.generate("", None)
        assert [s.state for s in seen] == [SessionState.ERROR]


@pytest.mark.unit
class TestListenerOrdering:
    def test_newer_session_started_by_listener_on_other_thread(self, machine, png_bytes):
        seen: list[tuple[int, SessionState]] = []
        started: list[threading.Thread] = []

        def start_second(session: GenerationSession) -> None:
            if session.sequence_number == 1 and session.state == SessionState.REQUESTING:
                thread = threading.Thread(target=machine.generate, args=("second", png_bytes))
                started.append(thread)
                thread.start()
                thread.join(timeout=5)

        machine.subscribe(start_second)
        machine.subscribe(lambda s: seen.append((s.sequence_number, s.state)))
        machine.generate("first", png_bytes)

        assert len(started) == 1
        assert seen == [
            (1, SessionState.ENCODING),
            (2, SessionState.ENCODING),
            (2, SessionState.REQUESTING),
            (2, SessionState.SUCCESS),
        ]
        assert machine.session.sequence_number == 2
        assert machine.session.state == SessionState.SUCCESS

    def test_reset_from_listener_on_same_thread(self, machine, client, png_bytes):
        seen: list[tuple[int, SessionState]] = []

        def reset_on_encoding(session: GenerationSession) -> None:
            if session.state == SessionState.ENCODING:
                machine.reset()

        machine.subscribe(reset_on_encoding)
        machine.subscribe(lambda s: seen.append((s.sequence_number, s.state)))
        first = machine.generate("first", png_bytes)

        assert seen == [(2, SessionState.IDLE)]
        assert machine.session.state == SessionState.IDLE
        # The superseded session still ran to completion, but was never applied
        assert first.sequence_number == 1
        assert len(client.calls) == 1

    def test_sequences_never_go_backwards(self, store, png_bytes):
        client = BlockingClient()
        machine = GenerationStateMachine(store, client=client)
        seen: list[int] = []
        machine.subscribe(lambda s: seen.append(s.sequence_number))
        thread, _ = _run_first_in_thread(machine, client, png_bytes)
        machine.generate("second", png_bytes)
        client.release_first.set()
        thread.join(timeout=5)

        assert seen == sorted(seen)
        assert seen[-1] == machine.session.sequence_number
