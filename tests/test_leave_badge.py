import pytest

from collegeportal.api import BackendClient, NetworkError, PortalApi
from collegeportal.services.leave_badge import BadgePoller, badge_label, fetch_pending_count
from tests.conftest import BASE_URL

LEAVE = {'_id': 'l1', 'role': 'student', 'leaveDate': '2025-03-01', 'status': 'pending'}


@pytest.fixture
def api(backend):
    return PortalApi(BackendClient(BASE_URL, session=backend), token='t')


def test_count_endpoint_is_used_when_present(backend, api):
    backend.add('GET', '/leave/admin/pending/count', {'count': 7})
    assert fetch_pending_count(api, 'teacher') == 7
    assert backend.calls_to('GET', '/leave/admin/pending/count')[0].params == {'role': 'teacher'}
    assert backend.calls_to('GET', '/leave/admin/pending') == []


def test_missing_count_endpoint_falls_back_to_list(backend, api):
    backend.add('GET', '/leave/admin/pending', {'items': [LEAVE, dict(LEAVE, _id='l2'), dict(LEAVE, _id='l3')]})
    assert fetch_pending_count(api) == 3


@pytest.mark.parametrize('count, kwargs, expected', [
    (0, {}, None),
    (0, {'show_zero': True}, ''),
    (5, {}, '5'),
    (99, {}, '99'),
    (100, {}, '99+'),
    (12, {'maximum': 9}, '9+'),
])
def test_badge_label(count, kwargs, expected):
    assert badge_label(count, **kwargs) == expected


class Recorder:
    def __init__(self):
        self.published = []

    def __call__(self, count, label):
        self.published.append((count, label))


def test_failed_refresh_keeps_last_count():
    results = iter([4, NetworkError('down')])

    def fetch(cancel):
        result = next(results)
        if isinstance(result, Exception):
            raise result
        return result

    publish = Recorder()
    poller = BadgePoller(fetch, publish)

    assert poller.refresh() == 4
    assert poller.refresh() == 4
    assert publish.published == [(4, '4')]


def test_nothing_published_after_stop():
    publish = Recorder()
    poller = BadgePoller(lambda cancel: 2, publish)
    poller.stop()
    poller.refresh()
    assert publish.published == []


def test_run_ends_once_stopped():
    poller = None

    def publish(count, label):
        poller.stop()

    poller = BadgePoller(lambda cancel: 1, publish, interval=0.01)
    poller.run()

    assert poller.stopped
    assert poller.count == 1
