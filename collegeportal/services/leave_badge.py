import logging
import threading

from collegeportal.api import ApiError, CancellationToken, NotFoundError, RequestCancelled

log = logging.getLogger(__name__)

PENDING_CHANGED = 'leave:pending-changed'
PENDING_COUNT = 'leave:pending-count'


def fetch_pending_count(api, role='all', cancel=None):
    """Pending leave requests for ``role`` ('all', 'teacher' or 'student').

    Uses the lightweight count endpoint and falls back to the length of the
    pending list where the backend does not implement it (404).
    """
    try:
        return api.pending_leave_count(role, cancel=cancel)
    except NotFoundError:
        return len(api.pending_leaves(role, cancel=cancel))


def badge_label(count, maximum=99, show_zero=False):
    """Text for the badge, or None when the badge is hidden."""
    if count <= 0:
        return '' if show_zero else None
    if count > maximum:
        return f'{maximum}+'
    return str(count)


class BadgePoller:
    """Refreshes a count on an interval and whenever ``trigger`` is called.

    ``fetch`` receives the poller's cancellation token and returns the count;
    ``publish`` receives ``(count, label)``. A failed fetch keeps the last
    count. After ``stop`` nothing more is published.
    """

    def __init__(self, fetch, publish, interval=60, maximum=99):
        self.fetch = fetch
        self.publish = publish
        self.interval = interval
        self.maximum = maximum
        self.count = 0
        self._cancel = CancellationToken()
        self._wake = threading.Event()

    @property
    def stopped(self):
        return self._cancel.cancelled

    def refresh(self):
        try:
            count = self.fetch(self._cancel)
        except RequestCancelled:
            return self.count
        except ApiError as exc:
            log.debug('Pending leave count unavailable: %s', exc.message)
            return self.count
        if self.stopped:
            return self.count
        self.count = count
        self.publish(count, badge_label(count, self.maximum))
        return count

    def trigger(self):
        self._wake.set()

    def stop(self):
        self._cancel.cancel()
        self._wake.set()

    def run(self):
        self.refresh()
        while not self.stopped:
            self._wake.wait(self.interval)
            self._wake.clear()
            if self.stopped:
                break
            self.refresh()
