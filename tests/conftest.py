import pytest

from tests.support.fakes import FakeSession, register_widget


@pytest.fixture(autouse=True)
def _widget_fields():
    register_widget()


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()
