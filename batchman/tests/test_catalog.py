"""
Tests for the product catalog adapters.
"""

from decimal import Decimal

import pytest
from django.core.exceptions import ImproperlyConfigured

from batchman.adapters import ModelFieldCatalog, NoopCatalog, get_product_catalog
from batchman.tests.testapp.models import Product


pytestmark = pytest.mark.django_db


class TestGetProductCatalog:

    def test_default_is_model_field(self):
        assert isinstance(get_product_catalog(), ModelFieldCatalog)

    def test_cached(self):
        assert get_product_catalog() is get_product_catalog()

    def test_bad_path(self, settings):
        settings.BATCHMAN = {**settings.BATCHMAN, 'PRODUCT_CATALOG': 'batchman.adapters.nope.Missing'}

        with pytest.raises(ImproperlyConfigured):
            get_product_catalog()

    def test_empty_path(self, settings):
        settings.BATCHMAN = {**settings.BATCHMAN, 'PRODUCT_CATALOG': ''}

        with pytest.raises(ImproperlyConfigured):
            get_product_catalog()


class TestModelFieldCatalog:

    def test_exists(self, product):
        catalog = ModelFieldCatalog()

        assert catalog.exists(product)
        assert not catalog.exists(Product(name='Rascunho', sku='TMP'))

    def test_deleted_product(self, product):
        catalog = ModelFieldCatalog()
        Product.objects.filter(pk=product.pk).delete()

        assert not catalog.exists(product)

    def test_publish(self, product):
        ModelFieldCatalog().publish_stock_quantity(product, Decimal('42'))

        product.refresh_from_db()
        assert product.stock_quantity == Decimal('42')

    def test_publish_without_field(self, product, settings):
        settings.BATCHMAN = {**settings.BATCHMAN, 'PRODUCT_STOCK_FIELD': 'missing_field'}

        ModelFieldCatalog().publish_stock_quantity(product, Decimal('42'))

        product.refresh_from_db()
        assert product.stock_quantity == Decimal('0')


def test_noop_catalog(product):
    catalog = NoopCatalog()

    assert catalog.exists(product)
    assert catalog.publish_stock_quantity(product, Decimal('5')) is None
    product.refresh_from_db()
    assert product.stock_quantity == Decimal('0')
