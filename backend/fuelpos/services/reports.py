# fuelpos/services/reports.py
import calendar
import datetime
from decimal import Decimal

from django.utils import timezone
from rest_framework.exceptions import ValidationError

from fuelpos.models import PumpReading, Shift
from fuelpos.permissions import scope_queryset
from .sales import PAYMENT_METHODS, sales_queryset, summarize_sales
from .shifts import get_shift


def _scoped_shifts(user):
    return scope_queryset(Shift.objects.select_related("user"), user, "user")


def daily_sales_report(user, day=None):
    """Shifts that started on `day` (caller's own only, for attendants) and their sales."""
    day = day or timezone.localdate()
    shifts = list(_scoped_shifts(user).filter(shift_date=day))
    sales = list(sales_queryset(user).filter(shift__in=shifts).order_by("-created_at"))
    summary = summarize_sales(sales)
    summary["total_shifts"] = len(shifts)
    return {"date": day, "shifts": shifts, "sales": sales, "summary": summary}


def _month_range(year, month):
    if not 1 <= month <= 12:
        raise ValidationError({"month": ["Month must be between 1 and 12"]})
    if not 1 <= year <= 9999:
        raise ValidationError({"year": ["Invalid year"]})
    days = calendar.monthrange(year, month)[1]
    return datetime.date(year, month, 1), datetime.date(year, month, days)


def monthly_sales_report(user, year=None, month=None):
    """
    One bucket per calendar day of the month, zero-filled. Sales belong to
    the month through their shift's date and land in the bucket of their
    own local timestamp; a sale falling past month end is counted in the
    totals only.
    """
    today = timezone.localdate()
    year = year or today.year
    month = month or today.month
    first, last = _month_range(year, month)

    daily = {}
    day = first
    while day <= last:
        daily[day.isoformat()] = {
            "litres": Decimal("0"),
            "amount": Decimal("0"),
            **{method: Decimal("0") for method in PAYMENT_METHODS},
            "count": 0,
        }
        day += datetime.timedelta(days=1)

    shifts = _scoped_shifts(user).filter(shift_date__gte=first, shift_date__lte=last)
    sales = list(sales_queryset(user).filter(shift__in=shifts).order_by("created_at"))
    for sale in sales:
        bucket = daily.get(timezone.localdate(sale.created_at).isoformat())
        if bucket is None:
            continue
        bucket["litres"] += sale.litres_dispensed
        bucket["amount"] += sale.total_amount
        bucket[sale.payment_method] += sale.total_amount
        bucket["count"] += 1

    summary = summarize_sales(sales)
    summary["total_days"] = len(daily)
    return {"month": f"{year}-{month:02d}", "daily_sales": daily, "summary": summary}


def shift_report(shift_id, user):
    shift = get_shift(shift_id, user)
    readings = PumpReading.objects.filter(shift=shift).select_related(
        "nozzle", "nozzle__pump", "nozzle__fuel_type"
    )
    by_nozzle = {}
    for reading in readings:
        nozzle = reading.nozzle
        row = by_nozzle.setdefault(nozzle.pk, {
            "nozzle_id": str(nozzle.pk),
            "pump": nozzle.pump.pump_number,
            "nozzle": nozzle.nozzle_number,
            "fuel_type": nozzle.fuel_type.name,
            "opening": None,
            "closing": None,
        })
        row[reading.reading_type] = reading.meter_reading
    rows = sorted(by_nozzle.values(), key=lambda r: (r["pump"], r["nozzle"]))
    for row in rows:
        if row["opening"] is not None and row["closing"] is not None:
            row["metered_litres"] = row["closing"] - row["opening"]
        else:
            row["metered_litres"] = None

    sales = list(sales_queryset(user).filter(shift=shift).order_by("created_at"))
    return {
        "shift": shift,
        "readings": rows,
        "sales": sales,
        "totals": summarize_sales(sales),
        "generated_at": timezone.now(),
    }
