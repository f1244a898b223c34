# fuelpos/services/reconciliation.py
import logging
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.db import transaction as db_transaction
from django.db.models import Sum
from django.utils import timezone

from fuelpos.models import StockMovement, Tank, TankDip
from . import _decimal, notify_station, record_audit
from .inventory import ledger_balance

logger = logging.getLogger(__name__)


def rebuild_tank_stock(tank, *, repair=False, user=None):
    """
    Replay the movement ledger for one tank and compare it with the book
    stock. With repair=True the book stock is rewritten to the ledger fold.

    Returns:
    {
      "tank_id": "<uuid>", "tank_number": "T1",
      "book_stock": "7000.00", "ledger_stock": "7000.00", "drift": "0.00",
      "repaired": False
    }
    """
    ledger = ledger_balance(tank)
    book = _decimal(tank.current_stock)
    drift = book - ledger
    entry = {
        "tank_id": str(tank.id),
        "tank_number": tank.tank_number,
        "book_stock": f"{book:.2f}",
        "ledger_stock": f"{ledger:.2f}",
        "drift": f"{drift:.2f}",
        "repaired": False,
    }
    if not drift:
        return entry

    logger.warning("Tank %s book stock %s drifted from ledger %s by %s", tank.tank_number, book, ledger, drift)
    if repair:
        with db_transaction.atomic():
            locked = Tank.objects.select_for_update().get(pk=tank.pk)
            # re-read the ledger under the lock so a concurrent movement is included
            ledger = ledger_balance(locked)
            Tank.objects.filter(pk=tank.pk).update(current_stock=ledger, updated_at=timezone.now())
            record_audit(user, "tank.reconcile.repair", locked, {
                "book_stock": locked.current_stock,
                "ledger_stock": ledger,
            })
        tank.current_stock = ledger
        entry["ledger_stock"] = f"{ledger:.2f}"
        entry["repaired"] = True
    return entry


def reconcile_tank(tank, *, threshold_l=None, threshold_percent=None):
    """
    Compare the ledger stock as of the latest manual dip with that dip.

    The variance is ledger minus dip, so a positive value means fuel the
    books expect but the dipstick did not find. Flagged when it exceeds
    either the absolute litre tolerance or the percentage of capacity.
    """
    threshold_l = _decimal(threshold_l if threshold_l is not None else getattr(settings, "TANK_DIP_TOLERANCE_L", 50))
    threshold_percent = _decimal(
        threshold_percent if threshold_percent is not None else getattr(settings, "TANK_DIP_TOLERANCE_PERCENT", "0.5")
    )

    dip = TankDip.objects.filter(tank=tank).order_by("-recorded_date", "-created_at").first()
    if dip is None:
        logger.info("reconciliation: no dip for tank %s", tank.id)
        return {"tank_id": str(tank.id), "tank_number": tank.tank_number, "status": "no_dip", "flagged": False}

    expected = StockMovement.objects.filter(tank=tank, created_at__lte=dip.recorded_date).aggregate(
        total=Sum("litres")
    )["total"] or Decimal("0")
    actual = _decimal(dip.dip_reading)
    variance = (expected - actual).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    capacity = _decimal(tank.capacity_litres) or Decimal("1")
    variance_percent = (abs(variance) / capacity * Decimal("100")).quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP)

    flagged = abs(variance) > threshold_l or variance_percent > threshold_percent
    entry = {
        "tank_id": str(tank.id),
        "tank_number": tank.tank_number,
        "status": "checked",
        "dip": {"dip_id": str(dip.id), "recorded_date": dip.recorded_date.isoformat(), "level": f"{actual:.2f}"},
        "expected_level": f"{expected:.2f}",
        "actual_level": f"{actual:.2f}",
        "variance_l": f"{variance:.2f}",
        "variance_percent": f"{variance_percent:.4f}",
        "flagged": flagged,
    }
    if flagged:
        logger.warning(
            "Dip variance on tank %s: ledger %s L vs dip %s L (%s L, %s%%)",
            tank.tank_number, expected, actual, variance, variance_percent,
        )
        notify_station("tank.dip_variance", {
            "tank_id": entry["tank_id"],
            "tank_number": tank.tank_number,
            "variance_l": entry["variance_l"],
            "variance_percent": entry["variance_percent"],
        })
    return entry


def run_reconciliation(*, repair=False, tank_id=None, user=None):
    """
    Ledger replay plus dip comparison for every active tank (or one tank).

    Returns {"tanks": [...], "summary": {"total_checked", "drifted", "repaired", "flagged"}, "ran_at"}.
    """
    tanks = Tank.objects.filter(is_active=True)
    if tank_id:
        tanks = tanks.filter(pk=tank_id)

    results = []
    for tank in tanks:
        entry = rebuild_tank_stock(tank, repair=repair, user=user)
        entry["dip_check"] = reconcile_tank(tank)
        results.append(entry)

    return {
        "tanks": results,
        "summary": {
            "total_checked": len(results),
            "drifted": sum(1 for e in results if _decimal(e["drift"]) != 0),
            "repaired": sum(1 for e in results if e["repaired"]),
            "flagged": sum(1 for e in results if e["dip_check"]["flagged"]),
        },
        "ran_at": timezone.now().isoformat(),
    }
