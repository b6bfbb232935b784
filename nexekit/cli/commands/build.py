"""
Build command implementation.

Compiles an application entry script into a standalone executable.
"""

import logging
import signal
import threading

from nexekit.cli.utils import load_config_values, show_download_progress
from nexekit.config.parser import build_options
from nexekit.core.cancellation import CancellationToken
from nexekit.pipeline.orchestrator import compile_executable

logger = logging.getLogger(__name__)


def _overrides_from_args(args) -> dict:
    """Map parsed arguments onto configuration keys."""
    overrides = {
        "entry": args.input,
        "output": args.output,
        "runtime": args.runtime,
        "cache_dir": args.temp,
        "make_jobs": args.jobs,
        "dist_url": args.dist_url,
        "sha256": args.sha256,
        "timeouts": {"build": args.build_timeout},
    }
    if args.flags:
        overrides["suppress_cli_flags"] = True
    if args.no_verify:
        overrides["verify_checksum"] = False
    return overrides


CANCEL_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def _install_cancel_handlers(token: CancellationToken) -> dict:
    """Cancel the build on SIGINT or SIGTERM; returns the previous handlers."""
    if threading.current_thread() is not threading.main_thread():
        return {}

    def handle(signum, frame):
        token.cancel(signal.Signals(signum).name)

    return {signum: signal.signal(signum, handle) for signum in CANCEL_SIGNALS}


def run(args) -> int:
    """
    Run the build command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)

    Raises:
        NexeKitError: If configuration is invalid or a build stage fails
    """
    options = build_options(load_config_values(args.config), _overrides_from_args(args))
    logger.debug(f"Build options: {options}")

    token = CancellationToken()
    previous = _install_cancel_handlers(token)
    progress = show_download_progress if not args.quiet else None

    try:
        ctx = compile_executable(options, cancel_token=token, progress_callback=progress)
    finally:
        for signum, handler in previous.items():
            if handler is not None:
                signal.signal(signum, handler)

    logger.info(f"Executable written to {ctx.output_path}")
    return 0
