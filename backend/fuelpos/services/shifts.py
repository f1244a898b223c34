# fuelpos/services/shifts.py
import logging

from django.db import IntegrityError, transaction as db_transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from fuelpos.exceptions import ConflictError
from fuelpos.models import Nozzle, PumpReading, Shift
from fuelpos.permissions import ensure_can_access_shift, scope_queryset
from . import get_or_none, notify_station, parse_amount, record_audit

logger = logging.getLogger(__name__)

OPEN_SHIFT_EXISTS = "You already have an open shift"


def _parse_readings(entries, field, nozzles):
    """
    Normalise a list of {"nozzle_id", "meter_reading"} dicts into
    (nozzle, Decimal) pairs. Each nozzle may appear once.
    """
    parsed = []
    seen = set()
    for entry in entries or ():
        nozzle_id = entry.get("nozzle_id")
        nozzle = get_or_none(nozzles, pk=nozzle_id)
        if nozzle is None:
            raise ValidationError({field: [f"Invalid nozzle: {nozzle_id}"]})
        if nozzle.pk in seen:
            raise ValidationError({field: [f"Duplicate reading for nozzle {nozzle.nozzle_number}"]})
        seen.add(nozzle.pk)
        reading = parse_amount(entry.get("meter_reading"), field, label="Meter reading")
        parsed.append((nozzle, reading))
    return parsed


def find_open_shift(user):
    return Shift.objects.filter(user=user, status=Shift.STATUS_OPEN).first()


def start_shift(user, opening_cash, opening_readings=()):
    cash = parse_amount(opening_cash, "opening_cash", label="Opening cash")
    readings = _parse_readings(
        opening_readings, "opening_readings", Nozzle.objects.select_related("pump").filter(is_active=True)
    )

    now = timezone.now()
    try:
        with db_transaction.atomic():
            # any open shift blocks, whatever its date
            if Shift.objects.filter(user=user, status=Shift.STATUS_OPEN).exists():
                raise ConflictError(OPEN_SHIFT_EXISTS)
            shift = Shift.objects.create(
                user=user,
                shift_date=timezone.localdate(now),
                start_time=now,
                opening_cash=cash,
                status=Shift.STATUS_OPEN,
            )
            PumpReading.objects.bulk_create([
                PumpReading(
                    shift=shift,
                    nozzle=nozzle,
                    reading_type=PumpReading.OPENING,
                    meter_reading=reading,
                    recorded_by=user,
                )
                for nozzle, reading in readings
            ])
            record_audit(user, "shift.start", shift, {"opening_cash": cash, "readings": len(readings)})
            notify_station("shift.started", {"shift_id": str(shift.id), "user": user.username})
    except IntegrityError:
        # lost the race against a concurrent start for the same user
        raise ConflictError(OPEN_SHIFT_EXISTS)

    logger.info("Shift %s opened by %s with %s cash", shift.id, user.username, cash)
    return shift


def get_shift(shift_id, user):
    """Fetch a shift the caller may see. Missing is 404, someone else's is 403."""
    shift = get_or_none(Shift.objects.select_related("user"), pk=shift_id)
    if shift is None:
        raise NotFound("Shift not found")
    ensure_can_access_shift(shift, user)
    return shift


def close_shift(shift_id, user, closing_cash, closing_readings=(), notes=""):
    shift = get_shift(shift_id, user)
    if not shift.is_open:
        raise ConflictError("Shift is already closed")

    cash = parse_amount(closing_cash, "closing_cash", label="Closing cash")
    readings = _parse_readings(closing_readings, "closing_readings", Nozzle.objects.select_related("pump"))
    opening = dict(
        shift.readings.filter(reading_type=PumpReading.OPENING).values_list("nozzle_id", "meter_reading")
    )
    for nozzle, reading in readings:
        start = opening.get(nozzle.pk)
        if start is not None and reading < start:
            raise ValidationError({
                "closing_readings": [
                    f"Closing reading for nozzle {nozzle.nozzle_number} cannot be less than opening reading ({start})"
                ]
            })

    with db_transaction.atomic():
        locked = Shift.objects.select_for_update().get(pk=shift.pk)
        if not locked.is_open:
            raise ConflictError("Shift is already closed")
        try:
            PumpReading.objects.bulk_create([
                PumpReading(
                    shift=locked,
                    nozzle=nozzle,
                    reading_type=PumpReading.CLOSING,
                    meter_reading=reading,
                    recorded_by=user,
                )
                for nozzle, reading in readings
            ])
        except IntegrityError:
            raise ConflictError("Closing readings already recorded for this shift")
        locked.end_time = timezone.now()
        locked.closing_cash = cash
        locked.status = Shift.STATUS_CLOSED
        locked.notes = notes or ""
        locked.save(update_fields=["end_time", "closing_cash", "status", "notes", "updated_at"])
        record_audit(user, "shift.close", locked, {
            "closing_cash": cash,
            "readings": len(readings),
            "owner": str(locked.user_id),
        })
        notify_station("shift.closed", {"shift_id": str(locked.id), "user": locked.user.username})

    logger.info("Shift %s closed by %s with %s cash", locked.id, user.username, cash)
    return locked


def get_current_shift(user):
    shift = find_open_shift(user)
    if shift is None:
        raise NotFound("No open shift found")
    return shift


def list_shifts(user, date=None, status=None):
    qs = scope_queryset(Shift.objects.select_related("user"), user, "user")
    if date:
        qs = qs.filter(shift_date=date)
    if status:
        if status not in (Shift.STATUS_OPEN, Shift.STATUS_CLOSED):
            raise ValidationError({"status": ["Status must be open or closed"]})
        qs = qs.filter(status=status)
    return qs


def get_shift_detail(shift_id, user):
    shift = get_shift(shift_id, user)
    readings = shift.readings.select_related("nozzle", "nozzle__pump", "nozzle__fuel_type").order_by(
        "nozzle__pump__pump_number", "nozzle__nozzle_number", "reading_type"
    )
    return {"shift": shift, "readings": list(readings)}
