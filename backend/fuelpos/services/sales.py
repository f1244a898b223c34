# fuelpos/services/sales.py
import logging
from decimal import Decimal

from django.db import transaction as db_transaction
from rest_framework.exceptions import ValidationError

from fuelpos.exceptions import ConflictError
from fuelpos.models import Nozzle, Sale, Shift
from fuelpos.permissions import scope_queryset
from . import get_or_none, notify_station, parse_amount, record_audit
from .inventory import deduct_sale_from_stock
from .shifts import find_open_shift, get_shift

logger = logging.getLogger(__name__)

PAYMENT_METHODS = [choice for choice, _ in Sale.PAYMENT_CHOICES]


def record_sale(user, nozzle_id, opening_reading, closing_reading, payment_method):
    """
    Record one dispense against the caller's open shift.

    Litres and amount are derived here, never taken from the client, and the
    fuel price is frozen on the sale row. With stock deduction enabled the
    ledger write happens in the same transaction as the sale.
    """
    opening = parse_amount(opening_reading, "opening_reading", label="Opening reading")
    closing = parse_amount(closing_reading, "closing_reading", label="Closing reading")
    if closing <= opening:
        raise ValidationError({"closing_reading": ["Closing reading must be greater than opening reading"]})
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError({"payment_method": [f"Payment method must be one of: {', '.join(PAYMENT_METHODS)}"]})

    # looked up per request: a shift closed a moment ago must not take sales
    shift = find_open_shift(user)
    if shift is None:
        raise ConflictError("No open shift found. Please start a shift first.")

    nozzle = get_or_none(
        Nozzle.objects.select_related("pump", "fuel_type", "tank").filter(
            is_active=True, pump__is_active=True, fuel_type__is_active=True
        ),
        pk=nozzle_id,
    )
    if nozzle is None:
        raise ValidationError({"nozzle_id": ["Invalid nozzle"]})

    litres = closing - opening
    price = nozzle.fuel_type.price_per_litre
    total = litres * price

    with db_transaction.atomic():
        # same row lock close_shift takes, so a concurrent close cannot slip in
        shift = Shift.objects.select_for_update().get(pk=shift.pk)
        if shift.status != Shift.STATUS_OPEN:
            raise ConflictError("No open shift found. Please start a shift first.")
        sale = Sale.objects.create(
            shift=shift,
            nozzle=nozzle,
            opening_reading=opening,
            closing_reading=closing,
            litres_dispensed=litres,
            price_per_litre=price,
            total_amount=total,
            payment_method=payment_method,
            created_by=user,
        )
        deduct_sale_from_stock(sale, user=user)
        record_audit(user, "sale.record", sale, {
            "shift_id": str(shift.id),
            "nozzle_id": str(nozzle.id),
            "litres_dispensed": litres,
            "price_per_litre": price,
            "total_amount": total,
            "payment_method": payment_method,
        })
        notify_station("sale.recorded", {
            "sale_id": str(sale.id),
            "pump_number": nozzle.pump.pump_number,
            "fuel": nozzle.fuel_type.code,
            "litres": str(litres),
            "amount": str(total),
        })

    logger.info("Sale %s: %s L of %s at %s = %s", sale.id, litres, nozzle.fuel_type.code, price, total)
    return sale


def sales_queryset(user):
    qs = Sale.objects.select_related("shift", "shift__user", "nozzle", "nozzle__pump", "nozzle__fuel_type", "created_by")
    return scope_queryset(qs, user, "shift__user")


def list_sales(user, shift_id=None, date=None, payment_method=None):
    """Attendants only ever get their own shifts' sales, whatever they filter on."""
    qs = sales_queryset(user)
    if shift_id:
        qs = qs.filter(shift_id=shift_id)
    if date:
        qs = qs.filter(created_at__date=date)
    if payment_method:
        if payment_method not in PAYMENT_METHODS:
            raise ValidationError({"payment_method": [f"Payment method must be one of: {', '.join(PAYMENT_METHODS)}"]})
        qs = qs.filter(payment_method=payment_method)
    return qs


def _bucket():
    return {"litres": Decimal("0"), "amount": Decimal("0"), "count": 0}


def _add(bucket, sale):
    bucket["litres"] += sale.litres_dispensed
    bucket["amount"] += sale.total_amount
    bucket["count"] += 1


def summarize_sales(sales):
    summary = {
        "total_sales": 0,
        "total_litres": Decimal("0"),
        "total_amount": Decimal("0"),
        "by_payment_method": {method: _bucket() for method in PAYMENT_METHODS},
        "by_fuel_type": {},
        "by_pump": {},
    }
    for sale in sales:
        summary["total_sales"] += 1
        summary["total_litres"] += sale.litres_dispensed
        summary["total_amount"] += sale.total_amount
        _add(summary["by_payment_method"][sale.payment_method], sale)

        fuel = sale.nozzle.fuel_type
        bucket = summary["by_fuel_type"].setdefault(fuel.code, {"name": fuel.name, **_bucket()})
        _add(bucket, sale)

        pump = sale.nozzle.pump
        # keyed by id: a retired pump's number can be reused by its replacement
        bucket = summary["by_pump"].setdefault(
            str(pump.id), {"pump_number": pump.pump_number, "name": pump.name, **_bucket()}
        )
        _add(bucket, sale)
    return summary


def get_shift_summary(shift_id, user):
    shift = get_shift(shift_id, user)
    sales = list(sales_queryset(user).filter(shift=shift).order_by("created_at"))
    return {"shift": shift, "sales": sales, "summary": summarize_sales(sales)}
