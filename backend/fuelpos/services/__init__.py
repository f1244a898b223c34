# fuelpos/services/__init__.py
from decimal import Decimal, InvalidOperation

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction as db_transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from fuelpos.models import AuditLog

CENT = Decimal("0.01")


def _decimal(v):
    if v is None:
        return Decimal("0")
    if isinstance(v, Decimal):
        return v
    return Decimal(str(v))


def parse_amount(value, field, *, required=True, label=None):
    """
    Coerce an incoming number to a non-negative Decimal with at most two
    decimal places. Raises a field-level ValidationError otherwise.
    """
    label = label or field.replace("_", " ").capitalize()
    if value is None or value == "":
        if required:
            raise ValidationError({field: [f"{label} is required"]})
        return None
    try:
        amount = _decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError({field: [f"{label} must be a number"]})
    if not amount.is_finite():
        raise ValidationError({field: [f"{label} must be a number"]})
    if amount < 0:
        raise ValidationError({field: [f"{label} must be a positive number"]})
    if amount != amount.quantize(CENT):
        raise ValidationError({field: [f"{label} allows at most 2 decimal places"]})
    return amount


def get_or_none(queryset, **lookup):
    """`.get()` that treats a malformed id the same as a missing row."""
    try:
        return queryset.get(**lookup)
    except (queryset.model.DoesNotExist, DjangoValidationError, ValueError):
        return None


def record_audit(actor, action, target=None, payload=None):
    return AuditLog.objects.create(
        actor=actor if getattr(actor, "is_authenticated", False) else None,
        action=action,
        target_type=target.__class__.__name__ if target is not None else None,
        target_id=str(target.pk) if target is not None else None,
        payload=payload or {},
    )


def notify_station(event_type, payload):
    """Push a dashboard event once the surrounding transaction commits."""
    from fuelpos.tasks import broadcast_station_event  # local import, tasks import services

    event = {"event_type": event_type, "timestamp": timezone.now().isoformat(), **payload}
    db_transaction.on_commit(lambda: broadcast_station_event.delay(event))
