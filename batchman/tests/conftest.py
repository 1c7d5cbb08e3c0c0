"""
Pytest fixtures for Batchman tests.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model

from batchman import ledger
from batchman.adapters import reset_product_catalog
from batchman.models import Location, LocationKind
from batchman.protocols import BatchRequest
from batchman.tests.testapp.models import Product


User = get_user_model()


@pytest.fixture(autouse=True)
def fresh_catalog():
    """Drop the cached catalog so settings overrides take effect."""
    reset_product_catalog()
    yield
    reset_product_catalog()


@pytest.fixture
def user(db):
    """Create a test user."""
    return User.objects.create_user(
        username='testuser',
        password='testpass123'
    )


@pytest.fixture
def product(db):
    """Create a test product."""
    return Product.objects.create(name='Queijo Minas', sku='QMN-001')


@pytest.fixture
def other_product(db):
    return Product.objects.create(name='Requeijão', sku='REQ-001')


def _location(code, name, kind=LocationKind.WAREHOUSE):
    location, _ = Location.objects.get_or_create(
        code=code,
        defaults={'name': name, 'kind': kind},
    )
    return location


@pytest.fixture
def warehouse_x(db):
    return _location('deposito-x', 'Depósito X')


@pytest.fixture
def warehouse_y(db):
    return _location('deposito-y', 'Depósito Y')


@pytest.fixture
def warehouse_z(db):
    return _location('deposito-z', 'Depósito Z')


@pytest.fixture
def warehouse_w(db):
    return _location('deposito-w', 'Depósito W')


@pytest.fixture
def vehicle(db):
    return _location('van-01', 'Van 01', LocationKind.VEHICLE)


@pytest.fixture
def today():
    """Return today's date."""
    return date.today()


@pytest.fixture
def make_batch(db, product):
    """
    Factory for batches created through the ledger.

    Usage:
        batch = make_batch(100)
        batch = make_batch('50', product=other_product, manufacturing_date=...)
    """

    def _make(quantity, product=product, **kwargs):
        return ledger.create_batch(BatchRequest(
            product=product,
            quantity_produced=Decimal(str(quantity)),
            **kwargs,
        ))

    return _make


@pytest.fixture
def batch(make_batch, today):
    """A 100-unit batch with a 30-day shelf life."""
    return make_batch(100, manufacturing_date=today, expiry_date=today + timedelta(days=30))
