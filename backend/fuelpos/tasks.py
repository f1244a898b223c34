# fuelpos/tasks.py
import json
import logging

import redis
from asgiref.sync import async_to_sync
from celery import shared_task
from channels.layers import get_channel_layer
from django.conf import settings

from .models import Tank

logger = logging.getLogger(__name__)

STATION_GROUP = "station"
EVENTS_CHANNEL = "fuelpos:events"


@shared_task
def broadcast_station_event(event):
    """
    Fan an event out to connected dashboards (channels group "station") and,
    when Redis is configured, to the raw pubsub channel for other observers.
    """
    channel_layer = get_channel_layer()
    if channel_layer is not None:
        async_to_sync(channel_layer.group_send)(
            STATION_GROUP,
            {"type": "station_event", "payload": event},
        )
    if settings.REDIS_URL:
        try:
            r = redis.from_url(settings.REDIS_URL)
            r.publish(EVENTS_CHANNEL, json.dumps(event, default=str))
        except redis.RedisError:
            logger.warning("Could not publish %s to %s", event.get("event_type"), EVENTS_CHANNEL, exc_info=True)
    return event


@shared_task
def check_tank_level(tank_id):
    """Emit a low-stock alert when a tank is at or below its reorder level."""
    try:
        tank = Tank.objects.select_related("fuel_type").get(pk=tank_id)
    except Tank.DoesNotExist:
        return None
    if not tank.is_active or not tank.is_low_stock:
        return None

    logger.warning("Tank %s low on stock: %s L (reorder at %s L)", tank.tank_number, tank.current_stock, tank.reorder_level)
    event = {
        "event_type": "tank.low_stock",
        "tank_id": str(tank.id),
        "tank_number": tank.tank_number,
        "fuel_type": tank.fuel_type.code,
        "current_stock": str(tank.current_stock),
        "reorder_level": str(tank.reorder_level),
    }
    broadcast_station_event.delay(event)
    return event


@shared_task
def reconcile_tank_stock(tank_id, repair=False):
    from .services.reconciliation import run_reconciliation  # local import, services enqueue tasks

    result = run_reconciliation(repair=repair, tank_id=tank_id)
    logger.info("reconcile_tank_stock(%s) -> %s", tank_id, result["summary"])
    return result


@shared_task
def reconcile_all_tanks(repair=False):
    from .services.reconciliation import run_reconciliation

    result = run_reconciliation(repair=repair)
    logger.info("nightly reconciliation: %s", result["summary"])
    return result
