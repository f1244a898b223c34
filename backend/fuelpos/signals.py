# fuelpos/signals.py
import logging

from django.db import transaction as db_transaction
from django.db.models.signals import post_save
from django.dispatch import receiver

from .models import TankDip
from .tasks import reconcile_tank_stock

logger = logging.getLogger(__name__)


@receiver(post_save, sender=TankDip)
def on_tank_dip_saved(sender, instance, created, **kwargs):
    # only a new dip triggers a check, edits to notes do not
    if not created:
        return
    tank_id = str(instance.tank_id)
    logger.debug("dip %s saved, scheduling reconciliation of tank %s", instance.id, tank_id)
    db_transaction.on_commit(lambda: reconcile_tank_stock.delay(tank_id))
