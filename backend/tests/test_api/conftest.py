"""
API test fixtures

Bearer tokens are resolved against the users table on every request, so
the user repository behind the auth dependency is replaced with an
in-memory registry of the customer, seller and admin accounts.
"""
from unittest.mock import MagicMock

import pytest

from buysell.core import auth
from buysell.main import app


@pytest.fixture
def accounts(customer, seller, admin, make_user):
    """Stored accounts keyed by id; tests may edit or drop entries"""
    return {
        user.id: make_user(id=user.id, email=user.email, role=user.role)
        for user in (customer, seller, admin)
    }


@pytest.fixture(autouse=True)
def account_lookup(accounts):
    repo = MagicMock()
    repo.find_by_id.side_effect = lambda user_id: accounts.get(user_id)
    app.dependency_overrides[auth.get_user_repository] = lambda: repo
    yield repo
    app.dependency_overrides.pop(auth.get_user_repository, None)
