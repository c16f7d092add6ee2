"""Wall-clock helpers shared by the collectors."""

import time
from collections.abc import Callable

# Returns epoch seconds, like time.time
Clock = Callable[[], float]


def now_ms(clock: Clock = time.time) -> int:
    """Current epoch time in whole milliseconds."""
    return int(clock() * 1000)
