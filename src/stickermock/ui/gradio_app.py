"""
Gradio web UI for stickermock.

Single page: API key settings, scene prompt, sticker upload, Generate and
Regenerate buttons, and the resulting mockup. Every button is a thin caller of
the browser session's own GenerationStateMachine; the page only renders the
session it gets back.
"""

import atexit
import contextlib
import os
import tempfile
from collections.abc import Callable
from functools import partial
from pathlib import Path
from typing import Any

import gradio as gr

from stickermock import (
    Config,
    CredentialStore,
    ErrorKind,
    Failure,
    GenerationSession,
    GenerationStateMachine,
    SessionState,
    Success,
    __version__,
    mask_key,
)
from stickermock.logging_config import get_logger

logger = get_logger(__name__)

# Default server port; overridable via STICKERMOCK_UI_PORT
DEFAULT_UI_PORT = 7860
DEFAULT_UI_HOST = "127.0.0.1"

PAGE_TITLE = "stickermock – AI sticker mockups"

# Output images written for display; cleaned on process exit
_temp_paths: set[str] = set()


def _register_temp_path(path: str) -> None:
    _temp_paths.add(path)


def _cleanup_temp_paths() -> None:
    for path in _temp_paths:
        with contextlib.suppress(OSError):
            Path(path).unlink(missing_ok=True)


atexit.register(_cleanup_temp_paths)


def _format_status(message: str, status_type: str = "info") -> str:
    """
    Format a status message with color and icon.

    Args:
        message: The status message text.
        status_type: One of "info", "success", "error", "warning", "idle".

    Returns:
        HTML-formatted status string.
    """
    if status_type == "success":
        icon, color, bg_color = "✅", "#10b981", "#d1fae5"
    elif status_type == "error":
        icon, color, bg_color = "❌", "#ef4444", "#fee2e2"
    elif status_type == "warning":
        icon, color, bg_color = "⚠️", "#f59e0b", "#fef3c7"
    elif status_type == "info":
        icon, color, bg_color = "ℹ️", "#3b82f6", "#dbeafe"
    else:  # idle
        return ""

    return f"""<div style="padding: 12px 16px; border-radius: 8px; background-color: {bg_color}; border-left: 4px solid {color}; margin: 8px 0;">
    <span style="font-size: 16px; margin-right: 8px;">{icon}</span>
    <span style="color: {color}; font-weight: 500;">{message}</span>
</div>"""


def _failure_to_message(failure: Failure) -> str:
    """Map a failed session to a short user-facing message."""
    if failure.kind == ErrorKind.FILE_READ:
        return f"Failed to read image file. {failure.message}"
    if failure.kind == ErrorKind.NETWORK:
        return f"Generation failed: {failure.message}"
    if failure.kind == ErrorKind.TRANSPORT:
        return f"Could not reach the service. {failure.message}"
    if failure.kind == ErrorKind.MALFORMED_RESPONSE:
        return "No image was returned. Try rephrasing the prompt."
    return failure.message


def _write_output_image(result: Success) -> str:
    """Write the generated image to a temp file for gr.Image and return its path."""
    fd, path = tempfile.mkstemp(suffix=f".{result.extension}", prefix="sticker-mockup_")
    with os.fdopen(fd, "wb") as f:
        f.write(result.image_bytes)
    _register_temp_path(path)
    return path


def _session_to_outputs(session: GenerationSession) -> tuple[str, str | None]:
    """Render a session as (status_html, output_image_path)."""
    result = session.result
    if session.state == SessionState.SUCCESS and isinstance(result, Success):
        return _format_status("Mockup generated successfully!", "success"), _write_output_image(result)
    if session.state == SessionState.ERROR and isinstance(result, Failure):
        status = "warning" if result.kind == ErrorKind.VALIDATION else "error"
        return _format_status(_failure_to_message(result), status), None
    if session.in_flight:
        return _format_status("Generating…", "info"), None
    return "", None


MachineFactory = Callable[[], GenerationStateMachine]


def _session_machine(
    factory: MachineFactory, machine: GenerationStateMachine | None
) -> GenerationStateMachine:
    """Return the browser session's machine, creating it on the session's first event."""
    if machine is None:
        machine = factory()
        logger.debug("Created state machine for new browser session")
    return machine


def _generation_outputs(
    machine: GenerationStateMachine, session: GenerationSession
) -> tuple[Any, Any, Any, GenerationStateMachine]:
    """Outputs for (status, image, regenerate button, machine); stale sessions leave the page unchanged."""
    if session.sequence_number != machine.session.sequence_number:
        logger.debug("UI ignoring stale session seq=%d", session.sequence_number)
        return gr.update(), gr.update(), gr.update(), machine
    status, image_path = _session_to_outputs(session)
    return status, image_path, gr.update(interactive=machine.can_regenerate), machine


def _generate_click_handler(
    factory: MachineFactory,
    machine: GenerationStateMachine | None,
    prompt: str,
    sticker: str | None,
) -> tuple[Any, Any, Any, GenerationStateMachine]:
    """Generate button: run a new session for the current prompt and sticker."""
    logger.debug("Generate clicked")
    machine = _session_machine(factory, machine)
    session = machine.generate(prompt, sticker or None)
    return _generation_outputs(machine, session)


def _regenerate_click_handler(
    factory: MachineFactory, machine: GenerationStateMachine | None
) -> tuple[Any, Any, Any, GenerationStateMachine]:
    """Regenerate button: run a new session with the last prompt and sticker."""
    logger.debug("Regenerate clicked")
    machine = _session_machine(factory, machine)
    session = machine.regenerate()
    return _generation_outputs(machine, session)


def _sticker_change_handler(
    factory: MachineFactory, machine: GenerationStateMachine | None, sticker: str | None
) -> tuple[Any, Any, Any, GenerationStateMachine]:
    """Removing the sticker resets the page; selecting one leaves results as they are."""
    machine = _session_machine(factory, machine)
    if sticker:
        return gr.update(), gr.update(), gr.update(), machine
    machine.reset()
    return "", None, gr.update(interactive=False), machine


def _key_status(store: CredentialStore) -> str:
    credential = store.get()
    if credential is None:
        return _format_status("No API key configured.", "warning")
    where = "saved" if credential.is_persisted else "not saved, this session only"
    return _format_status(f"Using API key {mask_key(credential.key_value)} ({where}).", "info")


def _save_key_handler(store: CredentialStore, key: str) -> tuple[str, str]:
    """Save button in settings: store the key and clear the input box."""
    key = (key or "").strip()
    if not key:
        return _format_status("Enter an API key to save.", "warning"), ""
    store.set(key)
    credential = store.get()
    if credential is not None and not credential.is_persisted:
        return (
            _format_status("API key could not be saved; it will be used for this session only.", "warning"),
            "",
        )
    return _format_status("API key saved successfully!", "success"), ""


def _build_blocks(factory: MachineFactory, store: CredentialStore) -> gr.Blocks:
    """
    Build the Gradio Blocks UI and wire its buttons to per-session machines and store.

    Each browser session keeps its own GenerationStateMachine in a gr.State,
    created by factory on the session's first event. The credential store is
    shared by all sessions.
    """
    with gr.Blocks(title=PAGE_TITLE) as app:
        machine_state = gr.State(value=None)

        gr.HTML(
            """
<div style="margin: 16px 0 24px 0;">
    <h1 style="font-size: 2.2em; font-weight: 700; margin: 0;">AI Sticker Creator</h1>
    <p style="font-size: 1.1em; color: #6b7280; margin: 4px 0 0 0;">Transform your stickers into mockups with Gemini image generation</p>
</div>
"""
        )

        with gr.Accordion("Settings", open=store.get() is None):
            key_status = gr.HTML(value=_key_status(store))
            with gr.Row():
                key_tb = gr.Textbox(
                    label="Gemini API key",
                    type="password",
                    placeholder="Enter your Gemini API key",
                    scale=4,
                )
                save_key_btn = gr.Button("Save", scale=1)

        with gr.Row():
            with gr.Column():
                prompt_tb = gr.Textbox(
                    label="Describe your vision",
                    placeholder="e.g. 'A cute sticker on a laptop in a cozy coffee shop with warm lighting'",
                    lines=5,
                )
                sticker = gr.Image(
                    label="Upload your sticker",
                    type="filepath",
                    sources=["upload", "clipboard"],
                )
                with gr.Row():
                    generate_btn = gr.Button("Generate Mockup", variant="primary")
                    regenerate_btn = gr.Button("Regenerate", interactive=False)
            with gr.Column():
                status_html = gr.HTML(value="")
                out_image = gr.Image(label="Your AI-generated mockup", type="filepath")

        outputs = [status_html, out_image, regenerate_btn, machine_state]
        generate_btn.click(
            fn=partial(_generate_click_handler, factory),
            inputs=[machine_state, prompt_tb, sticker],
            outputs=outputs,
        )
        regenerate_btn.click(
            fn=partial(_regenerate_click_handler, factory),
            inputs=[machine_state],
            outputs=outputs,
        )
        sticker.change(
            fn=partial(_sticker_change_handler, factory),
            inputs=[machine_state, sticker],
            outputs=outputs,
        )
        save_key_btn.click(
            fn=partial(_save_key_handler, store),
            inputs=[key_tb],
            outputs=[key_status, key_tb],
        )

        gr.HTML(
            f'<p style="text-align: center; color: #9ca3af; margin-top: 32px;">stickermock v{__version__}</p>'
        )

    return app


def launch(
    server_name: str | None = None,
    server_port: int | None = None,
    share: bool = False,
) -> None:
    """
    Build the Gradio app and launch the server.

    Args:
        server_name: Host to bind (default: STICKERMOCK_UI_HOST or 127.0.0.1).
        server_port: Port (default: STICKERMOCK_UI_PORT or 7860).
        share: If True, create a public share link.
    """
    host = server_name or os.getenv("STICKERMOCK_UI_HOST", DEFAULT_UI_HOST)
    port = server_port
    if port is None:
        try:
            port = int(os.getenv("STICKERMOCK_UI_PORT", str(DEFAULT_UI_PORT)))
        except ValueError:
            port = DEFAULT_UI_PORT

    config = Config.from_env()
    config.validate()
    store = CredentialStore.from_config(config)
    factory = partial(GenerationStateMachine, store, config=config)

    print(f"stickermock ui is starting (v{__version__}) on http://{host}:{port}...")
    app = _build_blocks(factory, store)
    app.launch(server_name=host, server_port=port, share=share, inbrowser=True)
