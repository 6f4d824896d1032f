"""Reconnect backoff policy."""


class BackoffPolicy:
    """Exponential backoff: initial, doubled per consecutive failure, capped.

    >>> policy = BackoffPolicy(1.0, 30.0)
    >>> [policy.next_delay() for _ in range(3)]
    [1.0, 2.0, 4.0]
    """

    def __init__(self, initial: float = 1.0, maximum: float = 30.0, factor: float = 2.0):
        self.initial = initial
        self.maximum = maximum
        self.factor = factor
        self._current = initial

    @property
    def current(self) -> float:
        """Delay the next failure will wait."""
        return self._current

    def next_delay(self) -> float:
        delay = self._current
        self._current = min(delay * self.factor, self.maximum)
        return delay

    def reset(self) -> None:
        self._current = self.initial
