# fuelpos/management/commands/reconcile_tanks.py
import json

from django.core.management.base import BaseCommand, CommandError

from fuelpos.models import Tank
from fuelpos.services import get_or_none
from fuelpos.services.reconciliation import run_reconciliation


class Command(BaseCommand):
    help = "Replay the stock ledger of active tanks and compare it with book stock and the latest dip."

    def add_arguments(self, parser):
        parser.add_argument("--tank-id", type=str, default=None, dest="tank_id",
                            help="Only reconcile this tank (UUID).")
        parser.add_argument("--repair", action="store_true",
                            help="Rewrite drifted book stock to the ledger total.")
        parser.add_argument("--json", action="store_true", dest="as_json",
                            help="Print the full result as JSON.")

    def handle(self, *args, **options):
        tank_id = options.get("tank_id")
        if tank_id and get_or_none(Tank.objects.filter(is_active=True), pk=tank_id) is None:
            raise CommandError(f"No active tank with id {tank_id}")

        result = run_reconciliation(repair=options["repair"], tank_id=tank_id)
        if options["as_json"]:
            self.stdout.write(json.dumps(result, indent=2))
            return

        for entry in result["tanks"]:
            dip = entry["dip_check"]
            line = (
                f"Tank {entry['tank_number']}: book {entry['book_stock']} L, "
                f"ledger {entry['ledger_stock']} L, drift {entry['drift']} L"
            )
            if entry["repaired"]:
                line += " (repaired)"
            if dip["status"] == "checked":
                line += f", dip variance {dip['variance_l']} L"
                if dip["flagged"]:
                    line += " FLAGGED"
            self.stdout.write(line)

        summary = result["summary"]
        style = self.style.WARNING if summary["drifted"] or summary["flagged"] else self.style.SUCCESS
        self.stdout.write(style(
            f"{summary['total_checked']} tanks checked, {summary['drifted']} drifted, "
            f"{summary['repaired']} repaired, {summary['flagged']} dip variances flagged"
        ))
