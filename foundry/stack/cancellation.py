"""Cooperative cancellation of a stack installation.

A signal only sets an ``asyncio.Event``; the orchestrator looks at the
event between phases, saves its state and stops. A second signal falls
through to the default handler and aborts immediately.
"""

import asyncio
import logging
import signal
from contextlib import contextmanager
from typing import Iterator

_logging = logging.getLogger(__name__)

DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


@contextmanager
def watch_signals(
    event: asyncio.Event | None = None,
    signals: tuple[signal.Signals, ...] = DEFAULT_SIGNALS,
) -> Iterator[asyncio.Event]:
    """Set the yielded event when one of ``signals`` arrives.

    Must be entered from inside a running event loop. Platforms without
    ``loop.add_signal_handler`` get no handlers and a never-set event.
    """
    loop = asyncio.get_running_loop()
    cancel = event if event is not None else asyncio.Event()
    registered: list[signal.Signals] = []

    def request_stop(sig: signal.Signals) -> None:
        _logging.warning(
            f"Received {sig.name}; stopping after the current step (repeat to abort)"
        )
        cancel.set()
        loop.remove_signal_handler(sig)

    for sig in signals:
        try:
            loop.add_signal_handler(sig, request_stop, sig)
            registered.append(sig)
        except (NotImplementedError, RuntimeError) as e:
            _logging.debug(f"Cannot watch {sig.name}: {e}")

    try:
        yield cancel
    finally:
        for sig in registered:
            loop.remove_signal_handler(sig)


__all__ = ["watch_signals", "DEFAULT_SIGNALS"]
