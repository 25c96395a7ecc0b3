from django.core.management.base import BaseCommand, CommandError

from commission.services.recalculation import RecalculationAborted, recalculate_policies
from customers.models import Company
from tenancy.context import tenant_context


class Command(BaseCommand):
    help = "Recalculate cached policy commissions for active tenants."

    def add_arguments(self, parser):
        parser.add_argument(
            "--tenant",
            dest="tenant_code",
            default="",
            help="Optional tenant_code to run a single tenant.",
        )
        parser.add_argument(
            "--policy",
            dest="policy_ids",
            type=int,
            action="append",
            default=None,
            help="Policy id to recalculate (repeatable). Requires --tenant.",
        )
        parser.add_argument(
            "--workers",
            type=int,
            default=None,
            help="Worker threads (defaults to COMMISSION_RECALC_MAX_WORKERS).",
        )
        parser.add_argument(
            "--timeout",
            type=float,
            default=None,
            help="Batch timeout in seconds (defaults to COMMISSION_RECALC_TIMEOUT_SECONDS).",
        )

    def handle(self, *args, **options):
        tenant_code = (options.get("tenant_code") or "").strip().lower()
        policy_ids = options.get("policy_ids")
        if policy_ids and not tenant_code:
            raise CommandError("--policy requires --tenant.")

        tenants = Company.objects.filter(is_active=True, status=Company.STATUS_ACTIVE).order_by("id")
        if tenant_code:
            tenants = tenants.filter(tenant_code=tenant_code)

        if not tenants.exists():
            self.stdout.write(self.style.WARNING("No active tenant found for the selected filter."))
            return

        aborted = 0
        for company in tenants.iterator():
            try:
                with tenant_context(company):
                    report = recalculate_policies(
                        company,
                        policy_ids,
                        max_workers=options.get("workers"),
                        timeout=options.get("timeout"),
                    )
            except RecalculationAborted as exc:
                aborted += 1
                self.stderr.write(
                    self.style.ERROR(
                        f"[{company.tenant_code}] aborted completed={exc.completed} "
                        f"remaining={exc.remaining}"
                    )
                )
                continue

            counts = " ".join(f"{status}={count}" for status, count in report.counts.items())
            self.stdout.write(
                self.style.SUCCESS(f"[{company.tenant_code}] completed={report.completed} {counts}")
            )
            if report.missing_policy_ids:
                self.stdout.write(
                    self.style.WARNING(
                        f"[{company.tenant_code}] unknown policy ids: {report.missing_policy_ids}"
                    )
                )

        if aborted:
            raise CommandError(f"{aborted} tenant batch(es) aborted.")
