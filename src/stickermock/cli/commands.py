"""
Click command definitions for the stickermock CLI.

This module contains the Click command group and all CLI commands
(generate, set-key, show-key, clear-key, ui).
"""

import os
import time
from pathlib import Path

import click

from stickermock import (
    Config,
    CredentialStore,
    Failure,
    GenerationStateMachine,
    MemoryStorage,
    Success,
    __version__,
    mask_key,
)
from stickermock.cli import progress
from stickermock.cli.handlers import SessionFailed, run_with_error_handling
from stickermock.cli.utils import resolve_output_path
from stickermock.logging_config import configure_logging, get_verbosity_from_env


@click.group(
    help=f"""AI sticker mockup creator (Gemini image generation).

\b
Version: {__version__}
"""
)
@click.version_option(version=__version__, package_name="stickermock")
@click.pass_context
def cli(ctx: click.Context) -> None:
    ctx.color = True


@cli.command()
@click.option("--prompt", "-p", required=True, help="Scene to place the sticker in.")
@click.option(
    "--image",
    "-i",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to the sticker image.",
)
@click.option("--out", "-o", type=click.Path(path_type=Path), help="Output file path.")
@click.option(
    "--api-key",
    help="Gemini API key for this run only (not saved; see set-key).",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    help="Minimize progress messages; only print result path or errors.",
)
@click.option(
    "--verbose",
    "-v",
    "verbose_count",
    count=True,
    help="Increase verbosity: -v also show prompts, -vv show API detail.",
)
@click.option(
    "--debug-api",
    is_flag=True,
    help="Log raw API request payload and response (image data truncated) for debugging.",
)
@click.option(
    "--debug",
    is_flag=True,
    help="Show the full traceback for unexpected errors instead of a one-line message.",
)
def generate(
    prompt: str,
    image: Path,
    out: Path | None,
    api_key: str | None,
    quiet: bool,
    verbose_count: int,
    debug_api: bool,
    debug: bool,
) -> None:
    """Generate a mockup of IMAGE placed in the scene described by PROMPT."""
    verbose_level = min(verbose_count, 2) if verbose_count > 0 else get_verbosity_from_env()
    configure_logging(verbose_level=verbose_level, quiet=quiet)

    def do_generate() -> None:
        # 1. Load and validate config
        config = Config.from_env()
        if debug_api:
            config.debug_api = True
        config.validate()

        # 2. Credential: --api-key is used for this run only
        if api_key is not None:
            store = CredentialStore(MemoryStorage(), default=api_key)
        else:
            store = CredentialStore.from_config(config)

        # 3. Run one session
        machine = GenerationStateMachine(store, config=config)
        start_time = time.time()
        if not quiet:
            with progress.generation_progress(model=config.image_model) as on_session:
                unsubscribe = machine.subscribe(on_session)
                try:
                    session = machine.generate(prompt, image)
                finally:
                    unsubscribe()
        else:
            session = machine.generate(prompt, image)
        elapsed = time.time() - start_time

        result = session.result
        if isinstance(result, Failure):
            raise SessionFailed(result)
        if not isinstance(result, Success):
            raise RuntimeError(f"Session ended in {session.state.value} without a result")

        # 4. Save
        out_path = resolve_output_path(out, result.extension)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_bytes(result.image_bytes)

        # 5. Print result
        if quiet:
            click.echo(str(out_path))
        else:
            progress.print_success_result(
                output_path=out_path,
                generation_time=elapsed,
                model_used=config.image_model,
                prompt_used=prompt,
                media_type=result.media_type,
            )
            # Also print path to stdout for scriptability
            click.echo(str(out_path))

    run_with_error_handling(do_generate, quiet=quiet, debug=debug)


@cli.command("set-key")
@click.argument("key")
def set_key(key: str) -> None:
    """Save the Gemini API key to the settings file."""

    def do_set() -> None:
        config = Config.from_env()
        store = CredentialStore.from_config(config)
        store.set(key)
        credential = store.get()
        if credential is not None and credential.is_persisted:
            progress.print_success(f"API key saved to {config.settings_path}")
        else:
            progress.print_warning(f"API key could not be written to {config.settings_path}.")

    run_with_error_handling(do_set)


@cli.command("show-key")
def show_key() -> None:
    """Show the configured API key (masked) and where it comes from."""

    def do_show() -> None:
        config = Config.from_env()
        credential = CredentialStore.from_config(config).get()
        if credential is None:
            progress.print_warning("No API key configured. Use 'stickermock set-key KEY'.")
            return
        source = config.settings_path if credential.is_persisted else "GEMINI_API_KEY"
        click.echo(f"{mask_key(credential.key_value)} ({source})")

    run_with_error_handling(do_show)


@cli.command("clear-key")
def clear_key() -> None:
    """Remove the saved API key from the settings file."""

    def do_clear() -> None:
        config = Config.from_env()
        CredentialStore.from_config(config).clear()
        progress.print_success("Saved API key removed.")

    run_with_error_handling(do_clear)


@cli.command()
@click.option(
    "--port",
    "-p",
    type=int,
    default=None,
    envvar="STICKERMOCK_UI_PORT",
    help="Port for the Gradio server (default: 7860 or STICKERMOCK_UI_PORT).",
)
@click.option(
    "--host",
    "host",
    type=str,
    default=None,
    envvar="STICKERMOCK_UI_HOST",
    help="Host to bind (default: 127.0.0.1 or STICKERMOCK_UI_HOST). Use 0.0.0.0 for LAN.",
)
@click.option(
    "--share",
    is_flag=True,
    default=None,
    help="Create a public share link (e.g. gradio.live).",
)
def ui(port: int | None, host: str | None, share: bool | None) -> None:
    """Launch the Gradio web UI."""
    from stickermock.ui.gradio_app import launch as launch_ui

    configure_logging(verbose_level=get_verbosity_from_env(), quiet=False)

    share_val = share
    if share_val is None:
        env_share = os.environ.get("STICKERMOCK_UI_SHARE", "").lower()
        share_val = env_share in ("1", "true", "yes")
    launch_ui(server_name=host, server_port=port, share=share_val)


def main() -> None:
    """Entry point for the stickermock console script."""
    cli()


__all__ = ["cli", "main", "generate", "set_key", "show_key", "clear_key", "ui"]
