import asyncio
import logging
import signal
import sys
from typing import Dict, Optional

# It's important to set up logging before other imports that might use it.
from core.logger import setup_logging
from config import config, AppConfig

setup_logging()
logger = logging.getLogger(__name__)

SIGNAL_EXIT_CODES: Dict[signal.Signals, int] = {
    signal.SIGINT: 130,
    signal.SIGTERM: 143,
}


def _on_signal(sig: signal.Signals, task: asyncio.Task, received: Dict[str, signal.Signals]) -> None:
    received.setdefault("signal", sig)
    task.cancel()


def install_signal_handlers(task: asyncio.Task, received: Dict[str, signal.Signals]) -> None:
    """Cancel ``task`` on SIGINT/SIGTERM and remember which signal arrived."""
    loop = asyncio.get_running_loop()
    for sig in SIGNAL_EXIT_CODES:
        try:
            loop.add_signal_handler(sig, _on_signal, sig, task, received)
        except NotImplementedError:
            logger.debug(f"Signal handler for {sig.name} is not supported on this platform.")


def remove_signal_handlers() -> None:
    loop = asyncio.get_running_loop()
    for sig in SIGNAL_EXIT_CODES:
        try:
            loop.remove_signal_handler(sig)
        except NotImplementedError:
            pass


# --- Main Orchestrator ---
async def main(app_config: Optional[AppConfig] = None) -> int:
    """Entry point of the resume refresher; returns the process exit code."""
    from core.browser import BrowserSession
    from core.errors import ValidationFailure
    from core.validation import validate_credentials
    from diagnostics.storage import cleanup_stale_screenshots
    from phases.resume_update import run_resume_update

    app_config = app_config or config
    cleanup_stale_screenshots(app_config.diagnostics.output_dir)

    try:
        credentials = validate_credentials(app_config.credentials)
    except ValidationFailure as e:
        logger.error(f"Environment validation failed: {e.message}")
        for error in e.errors:
            logger.error(f"  - {error}")
        return 1

    logger.info("Application started.")
    session = BrowserSession(app_config.browser)
    received: Dict[str, signal.Signals] = {}
    task = asyncio.ensure_future(run_resume_update(app_config, credentials, session))
    install_signal_handlers(task, received)

    try:
        exit_code = await task
    except asyncio.CancelledError:
        sig = received.get("signal")
        if sig is None:
            raise
        logger.info(f"{sig.name} received. Closing browser...")
        await session.close()
        return SIGNAL_EXIT_CODES[sig]
    except Exception as e:
        logger.critical(f"Fatal error while running the application: {e}", exc_info=True)
        await session.close()
        return 1
    finally:
        remove_signal_handlers()

    if exit_code == 0:
        logger.info("Application finished successfully.")
    return exit_code


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
