import time

from django.core.management.base import BaseCommand

from appsettings.config import load_integration_config
from payments.exceptions import NotFoundError
from payments.integrations.piprapay import PipraPayClient, parse_verification
from payments.services import confirm_project_payment
from projects.models import Project


class Command(BaseCommand):
    help = "Poll PipraPay for pending projects and mark the completed ones paid"

    def add_arguments(self, parser):
        parser.add_argument("--max", type=int, default=50)
        parser.add_argument("--sleep", type=float, default=0.5)

    def handle(self, *args, **opts):
        config = load_integration_config()
        if not config.piprapay.is_configured:
            self.stdout.write(self.style.WARNING("PipraPay is not configured; nothing to reconcile."))
            return

        qs = Project.objects.exclude(payment_status=Project.PAID).order_by("created_at")[:opts["max"]]
        pending = list(qs.values_list("order_id", flat=True))
        if not pending:
            self.stdout.write(self.style.SUCCESS("No pending projects to reconcile."))
            return

        client = PipraPayClient(config.piprapay)
        for order_id in pending:
            envelope = client.verify_payment(order_id)
            if not envelope["ok"]:
                self.stdout.write(self.style.WARNING(f"{order_id}: verification failed ({envelope.get('status_code')})"))
            elif parse_verification(envelope["data"]).is_completed:
                try:
                    outcome = confirm_project_payment(order_id, config=config, source="reconcile")
                except NotFoundError as e:
                    self.stdout.write(self.style.WARNING(f"{order_id}: {e}"))
                else:
                    label = "paid" if outcome.transitioned else "already paid"
                    self.stdout.write(self.style.SUCCESS(f"Updated {order_id} -> {label}"))
            else:
                self.stdout.write(f"{order_id}: still pending")
            if opts["sleep"]:
                time.sleep(opts["sleep"])
