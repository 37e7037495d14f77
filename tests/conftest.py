"""Shared fixtures."""

import pytest

from clinic_shipping.config import DEFAULT_DANE_FILE, ShippingConfig
from clinic_shipping.geo import DaneResolver
from clinic_shipping.models import Customer, LineItem


@pytest.fixture
def config(tmp_path):
    """Create test configuration."""
    return ShippingConfig(
        envioclick_api_key="test-key",
        order_store_file=tmp_path / "orders.json",
        log_file=str(tmp_path / "logs" / "shipping.log"),
    )


@pytest.fixture(scope="session")
def resolver():
    """Resolver over the bundled DANE table."""
    return DaneResolver.from_file(DEFAULT_DANE_FILE)


@pytest.fixture
def customer():
    return Customer(
        first_name="Ana",
        last_name="Pérez",
        email="ana@example.com",
        phone="+57 (300) 123-4567",
        address="Carrera 15 # 10-20 Apartamento 502 Torre B Conjunto Los Almendros",
        neighborhood="Los Almendros",
        notes="Portería",
        city="Maicao",
        department="La Guajira",
    )


@pytest.fixture
def items():
    return [
        LineItem(id="serum", name="Serum Facial", weight=0.15, quantity=2),
        LineItem(id="crema", name="Crema Hidratante", quantity=1),
    ]
