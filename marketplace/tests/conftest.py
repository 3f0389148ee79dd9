from unittest.mock import Mock

import pytest
from rest_framework.test import APIClient

from infrastructure.container import container
from marketplace.tests.factories import ProductFactory, UserFactory
from utils.transaction_utils import TransactionState, UnitOfWork


@pytest.fixture(autouse=True)
def reset_container():
    """Services are cached on the singleton container; start every test clean."""
    container.reset()
    yield
    container.reset()


@pytest.fixture
def buyer(db):
    return UserFactory()


@pytest.fixture
def other_buyer(db):
    return UserFactory()


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def authenticated_client(api_client, buyer):
    api_client.force_authenticate(user=buyer)
    return api_client


@pytest.fixture
def make_product(db):
    def _make(**kwargs):
        return ProductFactory(**kwargs)

    return _make


@pytest.fixture
def fake_uow():
    """An open UnitOfWork stand-in for services driven by mocked repositories."""
    uow = Mock(spec=UnitOfWork)
    uow.using = "default"
    uow.state = TransactionState.VALIDATING
    uow.is_active = True
    return uow
