import os
import logging
import threading
from metrics import build_metrics, ISGUEST, EVENTS, COLLECT_ERRORS
from vmguestlib import Session, VMGuestLibError

logger = logging.getLogger(__name__)

REFRESH_EXIT = 'exit'
REFRESH_SKIP = 'skip'
REFRESH_POLICIES = (REFRESH_EXIT, REFRESH_SKIP)


def exit_process(error) -> None:
    # called from a request thread, sys.exit would only end the request
    logging.shutdown()
    os._exit(1)


class VMwareGuestCollector(object):
    """Prometheus collector over a vmguestlib session.

    Without a session only `vmwareguest_isguest 0` is exported. Scrapes are
    serialized with a lock since the session handle isn't thread safe.
    """

    def __init__(self, session=None, metrics=None,
                 refresh_error_policy=REFRESH_EXIT, on_fatal=exit_process) -> None:
        if refresh_error_policy not in REFRESH_POLICIES:
            raise ValueError(f'invalid refresh error policy <{refresh_error_policy}>')
        self._session = session
        self._metrics = build_metrics() if metrics is None else tuple(metrics)
        self._refresh_error_policy = refresh_error_policy
        self._on_fatal = on_fatal
        self._lock = threading.Lock()
        self.errors = 0
        self.events = 0

    @classmethod
    def create(cls, library_path=None, **kwargs):
        """Open a session and build a collector around it.

        Returns (collector, error). On failure the collector has no session
        and error is the VMGuestLibError, which the caller should log.
        """
        try:
            session = Session.open(library_path)
        except VMGuestLibError as e:
            return cls(None, **kwargs), e
        return cls(session, **kwargs), None

    @property
    def is_guest(self) -> bool:
        return self._session is not None

    @property
    def metrics(self):
        return self._metrics

    def describe(self):
        yield ISGUEST.family()
        if not self.is_guest:
            return
        for m in self._metrics:
            yield m.family()
        yield EVENTS.family()
        yield COLLECT_ERRORS.family()

    def collect(self):
        with self._lock:
            return list(self._collect())

    def _collect(self):
        yield ISGUEST.family(1 if self.is_guest else 0)
        if not self.is_guest:
            return

        if self._refresh():
            for m in self._metrics:
                try:
                    value = m.get(self._session)
                except VMGuestLibError:
                    # not logged, a missing statistic would flood the log every scrape
                    self.errors += 1
                    continue
                yield m.family(value)

        yield EVENTS.family(self.events)
        yield COLLECT_ERRORS.family(self.errors)

    def _refresh(self) -> bool:
        try:
            changed = self._session.refresh_info()
        except VMGuestLibError as e:
            if self._refresh_error_policy == REFRESH_EXIT:
                logger.critical('refreshing vmguestlib session failed, exiting: %s', e)
                self._on_fatal(e)
                return False
            logger.error('refreshing vmguestlib session failed, skipping scrape: %s', e)
            self.errors += 1
            return False
        if changed:
            logger.info('vmguestlib session changed (vmotion, snapshot, ...)')
            self.events += 1
        return True
