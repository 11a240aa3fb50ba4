from vmguestlib import VMGuestLibError, ERROR_NOT_AVAILABLE
from metrics import METRIC_TABLE


class FakeSession(object):
    """Stands in for vmguestlib.Session; every statistic reads as `default`."""

    def __init__(self, default=2048) -> None:
        self.values = {getter.function: default for getter, _, _, _ in METRIC_TABLE}
        self.failing = set()
        self.changes = []
        self.refresh_error = None
        self.refreshes = 0

    def refresh_info(self) -> bool:
        self.refreshes += 1
        if self.refresh_error is not None:
            raise self.refresh_error
        if self.changes:
            return self.changes.pop(0)
        return False

    def read(self, function, ctype):
        if function in self.failing:
            raise VMGuestLibError(ERROR_NOT_AVAILABLE)
        return self.values[function]
