"""Injectable wall clock.

Every evaluator takes a ``clock`` callable returning epoch seconds so tests
can drive ticks with a fake clock instead of sleeping.
"""
import time
from collections.abc import Callable

Clock = Callable[[], int]


def system_clock() -> int:
    """Current time as whole epoch seconds."""
    return int(time.time())
