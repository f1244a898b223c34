from decimal import Decimal

import pytest
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from fuelpos.exceptions import ConflictError
from fuelpos.models import Nozzle, Sale
from fuelpos.services import equipment, inventory, sales, shifts


@pytest.mark.django_db
class TestFuelCatalog:
    def test_create_and_update(self, admin_user):
        fuel = equipment.create_fuel_type(admin_user, "Hi-Octane", "hob", "305.25")
        assert fuel.code == "HOB"

        fuel = equipment.update_fuel_type(fuel.id, admin_user, "Hi-Octane 97", "HOB", "310.00")
        assert fuel.price_per_litre == Decimal("310.00")

    def test_duplicate_code_is_a_conflict(self, admin_user, petrol):
        with pytest.raises(ConflictError):
            equipment.create_fuel_type(admin_user, "Petrol 2", "PET", "1.00")

    def test_price_must_be_non_negative(self, admin_user, db):
        with pytest.raises(ValidationError):
            equipment.create_fuel_type(admin_user, "Gas", "CNG", "-1")

    def test_attendant_cannot_change_prices(self, attendant, petrol):
        with pytest.raises(PermissionDenied):
            equipment.update_fuel_type(petrol.id, attendant, "Petrol", "PET", "1.00")

    def test_inactive_types_hidden_by_default(self, admin_user, petrol, diesel):
        equipment.update_fuel_type(diesel.id, admin_user, "Diesel", "DSL", "290.00", is_active=False)
        assert list(equipment.list_fuel_types()) == [petrol]
        assert set(equipment.list_fuel_types(include_inactive=True)) == {petrol, diesel}


@pytest.mark.django_db
class TestPumps:
    def test_create_pump_with_nozzles(self, pump, tank):
        assert pump.pump_number == "P1"
        numbers = sorted(n.nozzle_number for n in pump.active_nozzles)
        assert numbers == ["1", "2"]
        assert Nozzle.objects.get(pump=pump, nozzle_number="1").tank == tank

    def test_duplicate_pump_number_is_a_conflict(self, admin_user, pump):
        with pytest.raises(ConflictError):
            equipment.create_pump(admin_user, "P1", "Again")

    def test_duplicate_nozzle_numbers_rejected(self, admin_user, petrol):
        with pytest.raises(ValidationError):
            equipment.create_pump(admin_user, "P2", "Pump 2", [
                {"nozzle_number": "1", "fuel_type_id": petrol.id},
                {"nozzle_number": "1", "fuel_type_id": petrol.id},
            ])

    def test_tank_must_hold_nozzle_fuel(self, admin_user, diesel, tank):
        with pytest.raises(ValidationError):
            equipment.create_pump(admin_user, "P2", "Pump 2", [
                {"nozzle_number": "1", "fuel_type_id": diesel.id, "tank_id": tank.id},
            ])

    def test_update_keeps_unchanged_nozzles_and_replaces_changed_ones(
        self, admin_user, attendant, pump, nozzle, diesel_nozzle, petrol, tank
    ):
        shifts.start_shift(attendant, 0)
        old_sale = sales.record_sale(attendant, diesel_nozzle.id, "1", "2", "cash")

        updated = equipment.update_pump(pump.id, admin_user, "P1", "Pump One", [
            {"nozzle_number": "1", "fuel_type_id": petrol.id, "tank_id": tank.id},
            {"nozzle_number": "2", "fuel_type_id": petrol.id, "tank_id": tank.id},
        ])

        active = {n.nozzle_number: n for n in updated.active_nozzles}
        assert updated.name == "Pump One"
        assert active["1"].id == nozzle.id
        assert active["2"].id != diesel_nozzle.id
        assert active["2"].fuel_type == petrol
        diesel_nozzle.refresh_from_db()
        assert diesel_nozzle.is_active is False
        assert diesel_nozzle.retired_at is not None
        # the old sale still points at the retired nozzle and its fuel
        assert Sale.objects.get(pk=old_sale.pk).nozzle.fuel_type.code == "DSL"

    def test_update_without_nozzles_keeps_the_set(self, admin_user, pump, nozzle):
        updated = equipment.update_pump(pump.id, admin_user, "P1A", "Pump 1")
        assert updated.pump_number == "P1A"
        assert nozzle.id in {n.id for n in updated.active_nozzles}

    def test_retire_pump_retires_nozzles(self, admin_user, pump, nozzle):
        equipment.retire_pump(pump.id, admin_user)
        nozzle.refresh_from_db()
        assert not nozzle.is_active
        assert list(equipment.list_pumps()) == []
        with pytest.raises(NotFound):
            equipment.update_pump(pump.id, admin_user, "P1", "Pump 1")

    def test_retired_pump_number_can_be_reused(self, admin_user, pump):
        equipment.retire_pump(pump.id, admin_user)
        assert equipment.create_pump(admin_user, "P1", "Replacement").is_active

    def test_nozzle_on_retired_tank_falls_back_by_fuel(self, admin_user, petrol, nozzle, tank):
        inventory.retire_tank(tank.id, admin_user)
        replacement = inventory.create_tank(admin_user, "T1B", petrol.id, "10000", "100", "0")
        nozzle.refresh_from_db()
        assert inventory.resolve_tank_for_nozzle(nozzle) == replacement
