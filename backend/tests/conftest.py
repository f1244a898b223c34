"""
Shared pytest fixtures.

Provides users for every role, a small fuel catalog (Petrol at 280.50,
Diesel), one petrol tank holding 6500 L against a 1500 L reorder level and
one pump with a petrol nozzle drawing from that tank plus a diesel nozzle.
"""
from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from fuelpos.models import FuelType, Nozzle, User
from fuelpos.services import equipment, inventory


@pytest.fixture
def make_user(db):
    def _make(username, role=User.ROLE_ATTENDANT, **extra):
        return User.objects.create_user(
            username=username,
            password="pass-12345",
            role=role,
            full_name=username.replace("_", " ").title(),
            **extra,
        )
    return _make


@pytest.fixture
def attendant(make_user):
    return make_user("ali")


@pytest.fixture
def other_attendant(make_user):
    return make_user("bilal")


@pytest.fixture
def supervisor(make_user):
    return make_user("sara", role=User.ROLE_SUPERVISOR)


@pytest.fixture
def admin_user(make_user):
    return make_user("admin", role=User.ROLE_ADMIN)


@pytest.fixture
def petrol(db):
    return FuelType.objects.create(name="Petrol", code="PET", price_per_litre=Decimal("280.50"))


@pytest.fixture
def diesel(db):
    return FuelType.objects.create(name="Diesel", code="DSL", price_per_litre=Decimal("290.00"))


@pytest.fixture
def tank(admin_user, petrol):
    return inventory.create_tank(
        admin_user,
        tank_number="T1",
        fuel_type_id=petrol.id,
        capacity_litres="10000",
        current_stock="6500",
        reorder_level="1500",
    )


@pytest.fixture
def pump(admin_user, petrol, diesel, tank):
    return equipment.create_pump(admin_user, "P1", "Pump 1", [
        {"nozzle_number": "1", "fuel_type_id": petrol.id, "tank_id": tank.id},
        {"nozzle_number": "2", "fuel_type_id": diesel.id},
    ])


@pytest.fixture
def nozzle(pump):
    return Nozzle.objects.get(pump=pump, nozzle_number="1")


@pytest.fixture
def diesel_nozzle(pump):
    return Nozzle.objects.get(pump=pump, nozzle_number="2")


@pytest.fixture
def client_for():
    def _client(user=None):
        client = APIClient()
        if user is not None:
            client.force_authenticate(user=user)
        return client
    return _client
