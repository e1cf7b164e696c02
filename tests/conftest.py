import pytest

from mockprep.interview import session as session_module


@pytest.fixture(autouse=True)
def no_active_session():
    session_module._active_session = None
    yield
    session_module._active_session = None
