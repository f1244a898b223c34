# fuelpos/services/inventory.py
import logging
from decimal import Decimal

from django.conf import settings
from django.db import IntegrityError, transaction as db_transaction
from django.db.models import F, Sum
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from fuelpos.exceptions import ConflictError
from fuelpos.models import Delivery, FuelType, StockMovement, Tank, TankDip
from fuelpos.permissions import require_admin
from . import _decimal, get_or_none, parse_amount, record_audit

logger = logging.getLogger(__name__)


def _enqueue_level_check(tank_id):
    from fuelpos.tasks import check_tank_level  # local import, tasks import services

    db_transaction.on_commit(lambda: check_tank_level.delay(str(tank_id)))


def get_active_tank(tank_id, field="tank_id"):
    tank = get_or_none(Tank.objects.select_related("fuel_type").filter(is_active=True), pk=tank_id)
    if tank is None:
        raise ValidationError({field: ["Invalid tank"]})
    return tank


def apply_movement(tank, kind, litres, *, user=None, delivery=None, sale=None, note=""):
    """
    The only code path that changes Tank.current_stock.

    Locks the tank row, applies the signed `litres` with an F() expression
    and appends the ledger row carrying the resulting balance. Must run
    inside the caller's atomic block when it is part of a larger write.
    """
    tank_id = tank.pk if isinstance(tank, Tank) else tank
    litres = _decimal(litres)
    with db_transaction.atomic():
        locked = Tank.objects.select_for_update().get(pk=tank_id)
        Tank.objects.filter(pk=tank_id).update(current_stock=F("current_stock") + litres, updated_at=timezone.now())
        locked.refresh_from_db(fields=["current_stock"])
        movement = StockMovement.objects.create(
            tank=locked,
            kind=kind,
            litres=litres,
            balance_after=locked.current_stock,
            delivery=delivery,
            sale=sale,
            note=note or "",
            created_by=user,
        )
    if locked.current_stock < 0:
        logger.warning("Tank %s stock went negative (%s L) after %s movement", locked.tank_number, locked.current_stock, kind)
    if isinstance(tank, Tank):
        tank.current_stock = locked.current_stock
    return movement


def ledger_balance(tank):
    total = StockMovement.objects.filter(tank=tank).aggregate(total=Sum("litres"))["total"]
    return total if total is not None else Decimal("0")


# ---------------------------
# Deliveries
# ---------------------------
def record_delivery(user, tank_id, challan_number, litres_delivered, delivery_date,
                    supplier_name="", notes=""):
    litres = parse_amount(litres_delivered, "litres_delivered", label="Litres delivered")
    challan_number = (challan_number or "").strip()
    if not challan_number:
        raise ValidationError({"challan_number": ["Challan number is required"]})
    if not delivery_date:
        raise ValidationError({"delivery_date": ["Delivery date is required"]})
    tank = get_active_tank(tank_id)

    with db_transaction.atomic():
        delivery = Delivery.objects.create(
            tank=tank,
            challan_number=challan_number,
            litres_delivered=litres,
            delivery_date=delivery_date,
            supplier_name=supplier_name or "",
            notes=notes or "",
            created_by=user,
        )
        movement = apply_movement(
            tank, StockMovement.KIND_DELIVERY, litres,
            user=user, delivery=delivery, note=f"Challan {challan_number}",
        )
        record_audit(user, "delivery.record", delivery, {
            "tank_id": str(tank.id),
            "challan_number": challan_number,
            "litres_delivered": litres,
            "balance_after": movement.balance_after,
        })
        _enqueue_level_check(tank.id)

    # capacity is advisory: the delivery still lands, the overflow is flagged
    delivery.exceeds_capacity = movement.balance_after > tank.capacity_litres
    if delivery.exceeds_capacity:
        logger.warning(
            "Delivery %s to tank %s exceeds capacity: %s L in a %s L tank",
            challan_number, tank.tank_number, movement.balance_after, tank.capacity_litres,
        )
    logger.info("Delivery %s applied to tank %s: +%s L", challan_number, tank.tank_number, litres)
    return delivery


def list_deliveries(tank_id=None, date=None):
    qs = Delivery.objects.select_related("tank", "tank__fuel_type", "created_by")
    if tank_id:
        qs = qs.filter(tank_id=tank_id)
    if date:
        qs = qs.filter(delivery_date=date)
    return qs


# ---------------------------
# Tanks
# ---------------------------
def _tank_fields(tank_number, fuel_type_id, capacity_litres, current_stock, reorder_level):
    tank_number = (str(tank_number).strip() if tank_number is not None else "")
    if not tank_number:
        raise ValidationError({"tank_number": ["Tank number is required"]})
    fuel_type = get_or_none(FuelType.objects.filter(is_active=True), pk=fuel_type_id)
    if fuel_type is None:
        raise ValidationError({"fuel_type_id": ["Invalid fuel type"]})
    return {
        "tank_number": tank_number,
        "fuel_type": fuel_type,
        "capacity_litres": parse_amount(capacity_litres, "capacity_litres", label="Capacity"),
        "current_stock": parse_amount(current_stock, "current_stock", required=False, label="Current stock") or Decimal("0"),
        "reorder_level": parse_amount(reorder_level, "reorder_level", required=False, label="Reorder level") or Decimal("0"),
    }


def _ensure_unique_tank_number(tank_number, exclude_id=None):
    qs = Tank.objects.filter(is_active=True, tank_number=tank_number)
    if exclude_id is not None:
        qs = qs.exclude(pk=exclude_id)
    if qs.exists():
        raise ConflictError("Tank number already exists")


def create_tank(user, tank_number, fuel_type_id, capacity_litres, current_stock=0, reorder_level=0):
    require_admin(user)
    fields = _tank_fields(tank_number, fuel_type_id, capacity_litres, current_stock, reorder_level)
    opening_stock = fields.pop("current_stock")
    _ensure_unique_tank_number(fields["tank_number"])
    try:
        with db_transaction.atomic():
            tank = Tank.objects.create(current_stock=Decimal("0"), **fields)
            apply_movement(tank, StockMovement.KIND_OPENING, opening_stock, user=user, note="Opening stock")
            record_audit(user, "tank.create", tank, {"tank_number": tank.tank_number, "opening_stock": opening_stock})
    except IntegrityError:
        raise ConflictError("Tank number already exists")
    logger.info("Tank %s created with %s L", tank.tank_number, opening_stock)
    return tank


def update_tank(tank_id, user, tank_number, fuel_type_id, capacity_litres, current_stock, reorder_level):
    """Full replace of the mutable fields; a stock change becomes an adjustment movement."""
    require_admin(user)
    tank = get_or_none(Tank.objects.filter(is_active=True), pk=tank_id)
    if tank is None:
        raise NotFound("Tank not found")
    fields = _tank_fields(tank_number, fuel_type_id, capacity_litres, current_stock, reorder_level)
    new_stock = fields.pop("current_stock")
    _ensure_unique_tank_number(fields["tank_number"], exclude_id=tank.pk)
    if fields["fuel_type"].pk != tank.fuel_type_id and tank.nozzles.filter(is_active=True).exists():
        raise ConflictError("Tank still feeds active nozzles; move them before changing its fuel type")

    try:
        with db_transaction.atomic():
            locked = Tank.objects.select_for_update().get(pk=tank.pk)
            for name, value in fields.items():
                setattr(locked, name, value)
            locked.save(update_fields=list(fields) + ["updated_at"])
            delta = new_stock - locked.current_stock
            if delta:
                apply_movement(locked, StockMovement.KIND_ADJUSTMENT, delta, user=user, note="Manual stock correction")
            record_audit(user, "tank.update", locked, {
                "tank_number": locked.tank_number,
                "capacity_litres": locked.capacity_litres,
                "reorder_level": locked.reorder_level,
                "stock_adjustment": delta,
            })
    except IntegrityError:
        raise ConflictError("Tank number already exists")
    if delta:
        _enqueue_level_check(locked.pk)
    return locked


def retire_tank(tank_id, user):
    require_admin(user)
    tank = get_or_none(Tank.objects.filter(is_active=True), pk=tank_id)
    if tank is None:
        raise NotFound("Tank not found")
    with db_transaction.atomic():
        tank.retire()
        record_audit(user, "tank.retire", tank, {"tank_number": tank.tank_number, "current_stock": tank.current_stock})
    logger.info("Tank %s retired", tank.tank_number)
    return tank


def list_tanks():
    return Tank.objects.select_related("fuel_type").filter(is_active=True)


def get_tank(tank_id):
    tank = get_or_none(Tank.objects.select_related("fuel_type"), pk=tank_id)
    if tank is None:
        raise NotFound("Tank not found")
    return tank


def is_low_stock(tank):
    return tank.current_stock <= tank.reorder_level


def low_stock_tanks():
    return list_tanks().filter(current_stock__lte=F("reorder_level"))


def list_movements(tank_id):
    tank = get_tank(tank_id)
    return tank.movements.select_related("delivery", "sale", "created_by").order_by("created_at")


# ---------------------------
# Sales draw from tanks
# ---------------------------
def resolve_tank_for_nozzle(nozzle):
    """
    The tank a nozzle draws from: its explicit tank when that is active and
    holds the nozzle's fuel, otherwise the only active tank holding the same
    fuel. None when there is no such tank or more than one.
    """
    if nozzle.tank_id and nozzle.tank.is_active and nozzle.tank.fuel_type_id == nozzle.fuel_type_id:
        return nozzle.tank
    candidates = list(Tank.objects.filter(is_active=True, fuel_type_id=nozzle.fuel_type_id)[:2])
    if len(candidates) == 1:
        return candidates[0]
    return None


def deduct_sale_from_stock(sale, user=None):
    if not getattr(settings, "FUELPOS_DEDUCT_SALES_FROM_STOCK", True):
        return None
    tank = resolve_tank_for_nozzle(sale.nozzle)
    if tank is None:
        logger.warning(
            "Sale %s on nozzle %s: no unambiguous tank for fuel %s, stock not deducted",
            sale.id, sale.nozzle_id, sale.nozzle.fuel_type.code,
        )
        return None
    movement = apply_movement(tank, StockMovement.KIND_SALE, -sale.litres_dispensed, user=user, sale=sale)
    _enqueue_level_check(tank.id)
    return movement


# ---------------------------
# Dips
# ---------------------------
def record_tank_dip(user, tank_id, dip_reading, recorded_date=None, temperature=None, notes=""):
    """Manual dipstick measurement. Recorded for audit and reconciliation, never moves stock."""
    reading = parse_amount(dip_reading, "dip_reading", label="Dip reading")
    temp = None
    if temperature not in (None, ""):
        try:
            temp = _decimal(temperature)
        except (ArithmeticError, ValueError, TypeError):
            raise ValidationError({"temperature": ["Temperature must be a number"]})
        if not temp.is_finite() or temp < -50 or temp > 100:
            raise ValidationError({"temperature": ["Temperature must be between -50 and 100"]})
    tank = get_active_tank(tank_id)
    dip = TankDip.objects.create(
        tank=tank,
        dip_reading=reading,
        temperature=temp,
        recorded_date=recorded_date or timezone.now(),
        recorded_by=user,
        notes=notes or "",
    )
    logger.info("Dip recorded for tank %s: %s L", tank.tank_number, reading)
    return dip


def list_tank_dips(tank_id=None):
    qs = TankDip.objects.select_related("tank", "recorded_by")
    if tank_id:
        qs = qs.filter(tank_id=tank_id)
    return qs
