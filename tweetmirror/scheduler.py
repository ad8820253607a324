"""Run a unit of work on a fixed interval, forever."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


def run_forever(
    work: Callable[[], object],
    interval: float,
    stop_event: Optional[threading.Event] = None,
) -> None:
    """Call ``work`` every ``interval`` seconds.

    An exception raised by ``work`` is logged with its traceback and the loop
    carries on with the next cycle; a single bad cycle never ends the
    process. Without ``stop_event`` this only returns when the process is
    terminated. With one, the pause becomes ``stop_event.wait(interval)`` and
    the loop exits as soon as the event is set.
    """
    while stop_event is None or not stop_event.is_set():
        try:
            work()
        except Exception:
            logger.exception("Failed to run successfully")
        if stop_event is None:
            time.sleep(interval)
        elif stop_event.wait(interval):
            break
