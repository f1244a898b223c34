# fuelpos/services/equipment.py
import logging

from django.db import IntegrityError, transaction as db_transaction
from django.db.models import Prefetch
from rest_framework.exceptions import NotFound, ValidationError

from fuelpos.exceptions import ConflictError
from fuelpos.models import FuelType, Nozzle, Pump, Tank
from fuelpos.permissions import require_admin
from . import get_or_none, parse_amount, record_audit

logger = logging.getLogger(__name__)


# ---------------------------
# Fuel catalog
# ---------------------------
def list_fuel_types(include_inactive=False):
    qs = FuelType.objects.all()
    if not include_inactive:
        qs = qs.filter(is_active=True)
    return qs


def _fuel_type_fields(name, code, price_per_litre):
    name = (name or "").strip()
    code = (code or "").strip().upper()
    if not name:
        raise ValidationError({"name": ["Name is required"]})
    if not code:
        raise ValidationError({"code": ["Code is required"]})
    price = parse_amount(price_per_litre, "price_per_litre", label="Price per litre")
    return name, code, price


def create_fuel_type(user, name, code, price_per_litre, is_active=True):
    require_admin(user)
    name, code, price = _fuel_type_fields(name, code, price_per_litre)
    if FuelType.objects.filter(code=code).exists():
        raise ConflictError("Fuel type code already exists")
    try:
        with db_transaction.atomic():
            fuel = FuelType.objects.create(name=name, code=code, price_per_litre=price, is_active=bool(is_active))
            record_audit(user, "fuel_type.create", fuel, {"code": code, "price_per_litre": price})
    except IntegrityError:
        raise ConflictError("Fuel type code already exists")
    return fuel


def update_fuel_type(fuel_type_id, user, name, code, price_per_litre, is_active=True):
    """Past sales keep the price they were sold at; only new sales see the change."""
    require_admin(user)
    fuel = get_or_none(FuelType.objects.all(), pk=fuel_type_id)
    if fuel is None:
        raise NotFound("Fuel type not found")
    name, code, price = _fuel_type_fields(name, code, price_per_litre)
    if FuelType.objects.filter(code=code).exclude(pk=fuel.pk).exists():
        raise ConflictError("Fuel type code already exists")
    old_price = fuel.price_per_litre
    with db_transaction.atomic():
        fuel.name = name
        fuel.code = code
        fuel.price_per_litre = price
        fuel.is_active = bool(is_active)
        fuel.save()
        record_audit(user, "fuel_type.update", fuel, {"code": code, "old_price": old_price, "new_price": price})
    if old_price != price:
        logger.info("Price of %s changed from %s to %s", code, old_price, price)
    return fuel


# ---------------------------
# Pumps and nozzles
# ---------------------------
def _parse_nozzles(entries):
    """
    Validate nozzle specs into (nozzle_number, fuel_type, tank) triples.
    A tank, when given, must be active and hold the nozzle's fuel.
    """
    specs = []
    numbers = set()
    for entry in entries:
        number = str(entry.get("nozzle_number") or "").strip()
        if not number:
            raise ValidationError({"nozzles": ["Nozzle number is required"]})
        if number in numbers:
            raise ValidationError({"nozzles": [f"Duplicate nozzle number {number}"]})
        numbers.add(number)

        fuel = get_or_none(FuelType.objects.filter(is_active=True), pk=entry.get("fuel_type_id"))
        if fuel is None:
            raise ValidationError({"nozzles": [f"Invalid fuel type for nozzle {number}"]})

        tank = None
        if entry.get("tank_id"):
            tank = get_or_none(Tank.objects.filter(is_active=True), pk=entry["tank_id"])
            if tank is None:
                raise ValidationError({"nozzles": [f"Invalid tank for nozzle {number}"]})
            if tank.fuel_type_id != fuel.pk:
                raise ValidationError({"nozzles": [f"Tank {tank.tank_number} does not hold {fuel.name}"]})
        specs.append((number, fuel, tank))
    return specs


def _pump_fields(pump_number, name):
    pump_number = (str(pump_number).strip() if pump_number is not None else "")
    name = (name or "").strip()
    if not pump_number:
        raise ValidationError({"pump_number": ["Pump number is required"]})
    if not name:
        raise ValidationError({"name": ["Pump name is required"]})
    return pump_number, name


def _ensure_unique_pump_number(pump_number, exclude_id=None):
    qs = Pump.objects.filter(is_active=True, pump_number=pump_number)
    if exclude_id is not None:
        qs = qs.exclude(pk=exclude_id)
    if qs.exists():
        raise ConflictError("Pump number already exists")


def create_pump(user, pump_number, name, nozzles=()):
    require_admin(user)
    pump_number, name = _pump_fields(pump_number, name)
    specs = _parse_nozzles(nozzles or ())
    _ensure_unique_pump_number(pump_number)
    try:
        with db_transaction.atomic():
            pump = Pump.objects.create(pump_number=pump_number, name=name)
            Nozzle.objects.bulk_create([
                Nozzle(pump=pump, nozzle_number=number, fuel_type=fuel, tank=tank)
                for number, fuel, tank in specs
            ])
            record_audit(user, "pump.create", pump, {"pump_number": pump_number, "nozzles": len(specs)})
    except IntegrityError:
        raise ConflictError("Pump number already exists")
    logger.info("Pump %s created with %d nozzles", pump_number, len(specs))
    return get_pump(pump.pk)


def update_pump(pump_id, user, pump_number, name, nozzles=None):
    """
    Rename/renumber a pump and optionally replace its nozzle set.

    Nozzles are never edited in place: an entry whose number, fuel and tank
    match an active nozzle keeps that nozzle; every other active nozzle is
    retired and the remaining entries get fresh identities. Sales recorded
    against retired nozzles keep resolving.
    """
    require_admin(user)
    pump = get_or_none(Pump.objects.filter(is_active=True), pk=pump_id)
    if pump is None:
        raise NotFound("Pump not found")
    pump_number, name = _pump_fields(pump_number, name)
    specs = _parse_nozzles(nozzles) if nozzles is not None else None
    _ensure_unique_pump_number(pump_number, exclude_id=pump.pk)

    retired, created = [], []
    try:
        with db_transaction.atomic():
            pump.pump_number = pump_number
            pump.name = name
            pump.save(update_fields=["pump_number", "name"])
            if specs is not None:
                current = {
                    (n.nozzle_number, n.fuel_type_id, n.tank_id): n
                    for n in pump.nozzles.filter(is_active=True)
                }
                wanted = {(number, fuel.pk, tank.pk if tank else None) for number, fuel, tank in specs}
                for key, nozzle in current.items():
                    if key not in wanted:
                        nozzle.retire()
                        retired.append(str(nozzle.pk))
                for number, fuel, tank in specs:
                    if (number, fuel.pk, tank.pk if tank else None) not in current:
                        nozzle = Nozzle.objects.create(pump=pump, nozzle_number=number, fuel_type=fuel, tank=tank)
                        created.append(str(nozzle.pk))
            record_audit(user, "pump.update", pump, {
                "pump_number": pump_number,
                "retired_nozzles": retired,
                "created_nozzles": created,
            })
    except IntegrityError:
        raise ConflictError("Pump number already exists")
    return get_pump(pump.pk)


def retire_pump(pump_id, user):
    require_admin(user)
    pump = get_or_none(Pump.objects.filter(is_active=True), pk=pump_id)
    if pump is None:
        raise NotFound("Pump not found")
    with db_transaction.atomic():
        for nozzle in pump.nozzles.filter(is_active=True):
            nozzle.retire()
        pump.retire()
        record_audit(user, "pump.retire", pump, {"pump_number": pump.pump_number})
    logger.info("Pump %s retired", pump.pump_number)
    return pump


def _active_nozzles():
    return Prefetch(
        "nozzles",
        queryset=Nozzle.objects.select_related("fuel_type", "tank").filter(is_active=True),
        to_attr="active_nozzles",
    )


def list_pumps():
    return Pump.objects.filter(is_active=True).prefetch_related(_active_nozzles())


def get_pump(pump_id):
    pump = get_or_none(Pump.objects.prefetch_related(_active_nozzles()), pk=pump_id)
    if pump is None:
        raise NotFound("Pump not found")
    return pump
