from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase

from commission.models import PolicyCommission
from commission.tests.test_recalculation import RecalculationFixtureMixin


class RecalculateCommissionsCommandTests(RecalculationFixtureMixin, TestCase):
    def test_recalculates_selected_tenant(self):
        stdout = StringIO()
        call_command("recalculate_commissions", tenant_code="acme", workers=1, stdout=stdout)

        self.assertIn("[acme] completed=5", stdout.getvalue())
        self.assertEqual(PolicyCommission.all_objects.filter(company=self.company).count(), 5)

    def test_reports_unknown_policy_ids(self):
        stdout = StringIO()
        call_command(
            "recalculate_commissions",
            tenant_code="acme",
            policy_ids=[self.p_agent.id, 424242],
            workers=1,
            stdout=stdout,
        )
        self.assertIn("completed=1", stdout.getvalue())
        self.assertIn("424242", stdout.getvalue())

    def test_policy_filter_requires_tenant(self):
        with self.assertRaises(CommandError):
            call_command("recalculate_commissions", policy_ids=[self.p_agent.id], stdout=StringIO())

    def test_aborted_batch_fails_the_command(self):
        with self.assertRaises(CommandError):
            call_command(
                "recalculate_commissions",
                tenant_code="acme",
                workers=1,
                timeout=-1,
                stdout=StringIO(),
                stderr=StringIO(),
            )

    def test_unknown_tenant_is_a_warning(self):
        stdout = StringIO()
        call_command("recalculate_commissions", tenant_code="nope", stdout=stdout)
        self.assertIn("No active tenant", stdout.getvalue())
