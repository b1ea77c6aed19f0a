import time
from datetime import datetime
from typing import Callable, Optional

from ..logging import get_logger
from .flow import ReceiptMatcher

LOG = get_logger("scheduler")


def run_tick(matcher: ReceiptMatcher) -> bool:
    """Run one pass, logging instead of raising. Returns True on success."""
    LOG.info(f"Receipt matcher tick: {datetime.now().isoformat(timespec='seconds')}")
    try:
        matcher.run_once()
    except Exception as exc:
        LOG.exception(f"Receipt matcher run failed: {exc}")
        return False
    return True


def run_forever(
    matcher: ReceiptMatcher,
    interval_seconds: float,
    *,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
    max_runs: Optional[int] = None,
) -> int:
    """Run immediately, then every interval_seconds until interrupted.

    Ticks are measured from the start of the previous run; a run that takes
    longer than the interval is followed immediately by the next one. Runs never
    overlap. max_runs bounds the loop (used by tests). Returns the number of runs.
    """
    interval = float(interval_seconds)
    runs = 0
    LOG.info(f"Scheduler started; interval {interval:.0f}s. Press Ctrl+C to stop.")
    try:
        while True:
            started = clock()
            run_tick(matcher)
            runs += 1
            if max_runs is not None and runs >= max_runs:
                return runs
            remaining = interval - (clock() - started)
            if remaining > 0:
                sleep(remaining)
    except KeyboardInterrupt:
        LOG.info("Interrupted by user; stopping scheduler")
    return runs
