import pytest

from bridge_watchdog import deadlock
from bridge_watchdog.deadlock import KeyedMutex
from bridge_watchdog.lookups import AddressBook
from bridge_watchdog.threedpass import ThreeDPass


@pytest.fixture(autouse=True)
def reset_process_state():
    # singletons outlive the per-test event loop
    KeyedMutex().locks.clear()
    deadlock._default_canary = None
    AddressBook().clear()
    ThreeDPass._created = False
    yield
    ThreeDPass._created = False
