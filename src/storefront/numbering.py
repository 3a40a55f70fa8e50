"""Human-readable order and shipment numbers.

Numbers are a fixed prefix followed by twelve uppercase hex digits of a
millisecond clock. The generator never hands out a value less than or
equal to the previous one, even when called twice in the same
millisecond or when the wall clock steps backwards.
"""

import threading
import time


class NumberGenerator:
    def __init__(self, prefix: str, clock=None) -> None:
        self.prefix = prefix
        self._clock = clock or (lambda: int(time.time() * 1000))
        self._last = 0
        self._lock = threading.Lock()

    def next(self) -> str:
        with self._lock:
            value = max(self._clock(), self._last + 1)
            self._last = value
        return f"{self.prefix}{value:012X}"


order_numbers = NumberGenerator("R")
shipment_numbers = NumberGenerator("H")
