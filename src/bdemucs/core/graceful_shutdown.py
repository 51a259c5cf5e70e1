"""
Interrupt handling for batch runs.

SIGINT and SIGTERM set the shutdown_requested event and raise
ShutdownRequested in the main thread. The exception unwinds the file being
processed through its Workspace (which cleans up), and the batch driver
checks the event between files.

Usage:
    from bdemucs.core.graceful_shutdown import install_signal_handlers, shutdown_requested

    install_signal_handlers()

    for item in work:
        if shutdown_requested.is_set():
            break
        process(item)
"""

import logging
import signal
import threading

from bdemucs.core.errors import ShutdownRequested

logger = logging.getLogger(__name__)

# Global event: check this in processing loops
shutdown_requested = threading.Event()

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)

_previous_handlers = {}


def _handle_signal(signum, frame):
    """Record the request and unwind whatever is running."""
    shutdown_requested.set()
    logger.warning("Terminated by user...")
    raise ShutdownRequested(signum)


def install_signal_handlers():
    """
    Route SIGINT/SIGTERM to the shutdown handler.

    Only possible from the main thread; elsewhere this is a no-op.
    """
    if threading.current_thread() is not threading.main_thread():
        logger.debug("Not in main thread, signal handlers not installed")
        return

    shutdown_requested.clear()
    for signum in HANDLED_SIGNALS:
        if signum not in _previous_handlers:
            _previous_handlers[signum] = signal.getsignal(signum)
        signal.signal(signum, _handle_signal)


def restore_signal_handlers():
    """Put back the handlers that were active before install_signal_handlers()."""
    if threading.current_thread() is not threading.main_thread():
        return

    for signum, handler in list(_previous_handlers.items()):
        signal.signal(signum, handler)
        del _previous_handlers[signum]
