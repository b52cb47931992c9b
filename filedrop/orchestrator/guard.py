"""Single-submission guard."""


class SubmissionGuard:
    """
    Compare-and-set flag allowing one submission in flight at a time.

    ``try_acquire`` never awaits, so on a single event loop the check and
    the set happen without interleaving.
    """

    def __init__(self):
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def try_acquire(self) -> bool:
        if self._in_flight:
            return False
        self._in_flight = True
        return True

    def release(self) -> None:
        self._in_flight = False
