import datetime
from decimal import Decimal

import pytest
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from fuelpos.api.serializers import DeliverySerializer
from fuelpos.exceptions import ConflictError
from fuelpos.models import AuditLog, Delivery, StockMovement, Tank, TankDip
from fuelpos.services import inventory

TODAY = datetime.date(2024, 1, 15)


@pytest.mark.django_db
class TestDeliveries:
    def test_delivery_increments_stock_exactly(self, attendant, tank):
        delivery = inventory.record_delivery(attendant, tank.id, "CH-001", "500", TODAY, "PSO")

        tank.refresh_from_db()
        assert tank.current_stock == Decimal("7000.00")
        assert delivery.exceeds_capacity is False
        movement = StockMovement.objects.get(delivery=delivery)
        assert movement.kind == StockMovement.KIND_DELIVERY
        assert movement.litres == Decimal("500.00")
        assert movement.balance_after == Decimal("7000.00")
        audit = AuditLog.objects.get(action="delivery.record", target_id=str(delivery.id))
        assert audit.verify()

    def test_overflow_is_flagged_not_refused(self, attendant, tank):
        delivery = inventory.record_delivery(attendant, tank.id, "CH-002", "4000", TODAY)
        tank.refresh_from_db()
        assert tank.current_stock == Decimal("10500.00")
        assert delivery.exceeds_capacity is True

    def test_unknown_tank_is_rejected(self, attendant, db):
        with pytest.raises(ValidationError) as exc:
            inventory.record_delivery(attendant, "7a0cf8e4-1111-4111-8111-111111111111", "CH", "10", TODAY)
        assert "tank_id" in exc.value.detail
        assert not Delivery.objects.exists()

    def test_retired_tank_takes_no_deliveries(self, attendant, admin_user, tank):
        inventory.retire_tank(tank.id, admin_user)
        with pytest.raises(ValidationError):
            inventory.record_delivery(attendant, tank.id, "CH", "10", TODAY)

    @pytest.mark.parametrize("challan,litres,day", [
        ("", "10", TODAY),
        ("CH", "-10", TODAY),
        ("CH", "10.555", TODAY),
        ("CH", "10", None),
    ])
    def test_rejects_bad_input(self, attendant, tank, challan, litres, day):
        with pytest.raises(ValidationError):
            inventory.record_delivery(attendant, tank.id, challan, litres, day)
        tank.refresh_from_db()
        assert tank.current_stock == Decimal("6500.00")

    def test_failed_audit_rolls_back_delivery_and_stock(self, monkeypatch, attendant, tank):
        def broken(*args, **kwargs):
            raise RuntimeError("audit store unavailable")

        monkeypatch.setattr(inventory, "record_audit", broken)
        with pytest.raises(RuntimeError):
            inventory.record_delivery(attendant, tank.id, "CH-003", "500", TODAY)

        assert not Delivery.objects.exists()
        assert not StockMovement.objects.filter(kind=StockMovement.KIND_DELIVERY).exists()
        tank.refresh_from_db()
        assert tank.current_stock == Decimal("6500.00")

    def test_list_filters(self, attendant, tank):
        first = inventory.record_delivery(attendant, tank.id, "CH-1", "10", TODAY)
        inventory.record_delivery(attendant, tank.id, "CH-2", "10", TODAY + datetime.timedelta(days=1))
        assert list(inventory.list_deliveries(date=TODAY)) == [first]
        assert inventory.list_deliveries(tank_id=tank.id).count() == 2

    def test_history_survives_tank_retirement(self, attendant, admin_user, tank):
        delivery = inventory.record_delivery(attendant, tank.id, "CH-9", "10", TODAY)
        inventory.retire_tank(tank.id, admin_user)

        row = inventory.list_deliveries().get(pk=delivery.pk)
        assert DeliverySerializer(row).data["tank_number"] == "T1"


@pytest.mark.django_db
class TestTanks:
    def test_create_writes_opening_movement(self, tank):
        opening = StockMovement.objects.get(tank=tank)
        assert opening.kind == StockMovement.KIND_OPENING
        assert opening.litres == Decimal("6500.00")
        assert tank.current_stock == Decimal("6500.00")

    def test_only_admin_manages_tanks(self, attendant, supervisor, petrol):
        for user in (attendant, supervisor):
            with pytest.raises(PermissionDenied):
                inventory.create_tank(user, "T9", petrol.id, "1000")

    def test_duplicate_number_among_active_tanks(self, admin_user, petrol, tank):
        with pytest.raises(ConflictError):
            inventory.create_tank(admin_user, "T1", petrol.id, "1000")
        inventory.retire_tank(tank.id, admin_user)
        assert inventory.create_tank(admin_user, "T1", petrol.id, "1000").is_active

    def test_rejects_negative_and_unknown_fuel(self, admin_user, petrol, db):
        with pytest.raises(ValidationError):
            inventory.create_tank(admin_user, "T5", petrol.id, "-1")
        with pytest.raises(ValidationError):
            inventory.create_tank(admin_user, "T5", "7a0cf8e4-1111-4111-8111-111111111111", "1000")

    def test_update_records_stock_correction(self, admin_user, petrol, tank):
        updated = inventory.update_tank(tank.id, admin_user, "T1", petrol.id, "12000", "6400", "2000")

        assert updated.capacity_litres == Decimal("12000")
        assert updated.reorder_level == Decimal("2000")
        tank.refresh_from_db()
        assert tank.current_stock == Decimal("6400.00")
        adjustment = StockMovement.objects.get(tank=tank, kind=StockMovement.KIND_ADJUSTMENT)
        assert adjustment.litres == Decimal("-100.00")
        assert inventory.ledger_balance(tank) == tank.current_stock

    def test_fuel_change_refused_while_nozzles_draw_from_tank(self, admin_user, diesel, tank, nozzle):
        with pytest.raises(ConflictError):
            inventory.update_tank(tank.id, admin_user, "T1", diesel.id, "10000", "6500", "1500")
        tank.refresh_from_db()
        assert tank.fuel_type_id == nozzle.fuel_type_id

    def test_fuel_change_allowed_once_nozzles_are_gone(self, admin_user, diesel, tank, nozzle):
        nozzle.retire()
        updated = inventory.update_tank(tank.id, admin_user, "T1", diesel.id, "10000", "6500", "1500")
        assert updated.fuel_type == diesel

    def test_update_excludes_self_from_uniqueness(self, admin_user, petrol, tank):
        inventory.create_tank(admin_user, "T2", petrol.id, "1000")
        inventory.update_tank(tank.id, admin_user, "T1", petrol.id, "10000", "6500", "1500")
        with pytest.raises(ConflictError):
            inventory.update_tank(tank.id, admin_user, "T2", petrol.id, "10000", "6500", "1500")

    def test_retire_hides_tank(self, admin_user, tank):
        inventory.retire_tank(tank.id, admin_user)
        tank.refresh_from_db()
        assert tank.is_active is False
        assert tank.retired_at is not None
        assert tank not in inventory.list_tanks()
        with pytest.raises(NotFound):
            inventory.retire_tank(tank.id, admin_user)

    def test_low_stock_predicate(self, admin_user, petrol, tank):
        Tank.objects.filter(pk=tank.pk).update(current_stock=Decimal("1500"))
        tank.refresh_from_db()
        assert inventory.is_low_stock(tank)
        assert list(inventory.low_stock_tanks()) == [tank]

        Tank.objects.filter(pk=tank.pk).update(current_stock=Decimal("1501"))
        tank.refresh_from_db()
        assert not inventory.is_low_stock(tank)
        assert list(inventory.low_stock_tanks()) == []

    def test_empty_ledger_folds_to_zero(self, petrol):
        bare = Tank.objects.create(tank_number="T0", fuel_type=petrol, capacity_litres=Decimal("100"))
        assert inventory.ledger_balance(bare) == Decimal("0")

    def test_ledger_matches_stock_after_mixed_movements(self, attendant, tank):
        inventory.record_delivery(attendant, tank.id, "CH-1", "250.25", TODAY)
        inventory.apply_movement(tank, StockMovement.KIND_ADJUSTMENT, "-0.25", user=attendant)
        tank.refresh_from_db()
        assert tank.current_stock == Decimal("6750.00")
        assert inventory.ledger_balance(tank) == tank.current_stock


@pytest.mark.django_db
class TestDips:
    def test_dip_does_not_move_stock(self, attendant, tank):
        dip = inventory.record_tank_dip(attendant, tank.id, "6400", temperature="31.5", notes="morning")
        tank.refresh_from_db()
        assert tank.current_stock == Decimal("6500.00")
        assert dip.temperature == Decimal("31.5")
        assert list(inventory.list_tank_dips(tank.id)) == [dip]
        assert TankDip.objects.count() == 1

    @pytest.mark.parametrize("temperature", ["-51", "100.5", "hot"])
    def test_temperature_range(self, attendant, tank, temperature):
        with pytest.raises(ValidationError):
            inventory.record_tank_dip(attendant, tank.id, "6400", temperature=temperature)
