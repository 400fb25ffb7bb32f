"""
Pytest configuration for contactshare
Marks state-machine and codec tests as sensitive and isolates process-wide singletons
"""

import faulthandler
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

# Test modules whose results must not depend on test ordering
SENSITIVE_MODULES = {
    'test_contact_codec',
    'test_exchange_session',
    'test_service_connector',
    'test_notification_channel',
}


def pytest_sessionstart(session):
    """Add watchdog for hanging tests when env flag is set"""
    if os.environ.get("CONTACTSHARE_PYTEST_WATCHDOG") == "1":
        faulthandler.enable()
        faulthandler.dump_traceback_later(30, repeat=True)


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers", "sensitive: Tests that must be deterministic and isolated"
    )


def pytest_collection_modifyitems(config, items):
    """Mark sensitive tests automatically based on module name"""
    for item in items:
        module_name = item.module.__name__
        if any(sensitive in module_name for sensitive in SENSITIVE_MODULES):
            item.add_marker(pytest.mark.sensitive)


@pytest.fixture(autouse=True)
def reset_process_singletons(request):
    """Give sensitive tests a fresh notification channel and timeout manager"""
    if not request.node.get_closest_marker("sensitive"):
        yield
        return

    from contactshare.notifications import channel
    from contactshare.reliability import timeout_manager

    channel._notification_channel = None
    timeout_manager._timeout_manager = None
    yield
    channel._notification_channel = None
    timeout_manager._timeout_manager = None
