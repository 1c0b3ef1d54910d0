import pytest

from route53_sidecar import (
    ChangeWaiter,
    DirectoryClient,
    DirectoryError,
    DNSLifecycle,
    PropagationStatus,
    RecordSpec,
)


class FakeDirectory(DirectoryClient):
    """
    In-memory directory service.

    `statuses` scripts the answers to query_change_status: each item is a
    PropagationStatus or an exception to raise. Once the script runs out every
    change is reported INSYNC, unless `stuck` is set, in which case it stays
    PENDING forever.
    """

    def __init__(self, statuses=None, stuck=False, fail_actions=()):
        self.statuses = list(statuses or [])
        self.stuck = stuck
        self.fail_actions = set(fail_actions)
        self.requests = []
        self.queries = []

    def submit_change(self, request):
        self.requests.append(request)
        if request.action in self.fail_actions:
            raise DirectoryError(f"{request.action.value} rejected")
        return f"/change/C{len(self.requests)}"

    def query_change_status(self, handle):
        self.queries.append(handle)
        if self.statuses:
            outcome = self.statuses.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        if self.stuck:
            return PropagationStatus.PENDING
        return PropagationStatus.INSYNC

    @property
    def actions(self):
        return [request.action for request in self.requests]


def query_errors(count):
    return [DirectoryError("Rate exceeded") for _ in range(count)]


@pytest.fixture
def record():
    return RecordSpec("my.example.com", "Z2AAAABCDEFGT4", "10.0.0.5", ttl=0)


@pytest.fixture
def directory():
    return FakeDirectory()


@pytest.fixture
def make_lifecycle(record):
    """Build a lifecycle over a directory with a fast poll interval"""
    def _make(directory, record=record, setup_delay=0):
        waiter = ChangeWaiter(directory, interval=0.01)
        return DNSLifecycle(directory, record, setup_delay=setup_delay, waiter=waiter)

    return _make
