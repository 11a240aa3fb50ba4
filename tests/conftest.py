import pytest
from prometheus_client import CollectorRegistry

from collector import VMwareGuestCollector
from fakes import FakeSession


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def fatal_calls():
    return []


@pytest.fixture
def collector(session, fatal_calls):
    return VMwareGuestCollector(session, on_fatal=fatal_calls.append)


@pytest.fixture
def registry(collector):
    registry = CollectorRegistry()
    registry.register(collector)
    return registry
