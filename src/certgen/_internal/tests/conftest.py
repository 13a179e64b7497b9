from unittest import mock

import pytest


# Polling loops sleep between status checks; tests script the statuses instead.
@pytest.fixture(autouse=True)
def mock_sleep():
    with mock.patch("time.sleep") as mocked:
        yield mocked
