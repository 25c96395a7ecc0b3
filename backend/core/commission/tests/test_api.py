import csv
import io
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings

from commission.models import CommissionGrid, PolicyCommission
from commission.services.recalculation import recalculate_policies
from commission.tests.test_recalculation import RecalculationFixtureMixin
from customers.models import Company, CompanyMembership
from insurance_core.models import Policy


@override_settings(ALLOWED_HOSTS=["testserver", ".example.com"])
class CommissionAPITests(RecalculationFixtureMixin, TestCase):
    def setUp(self):
        super().setUp()
        User = get_user_model()
        self.users = {}
        for role in (
            CompanyMembership.ROLE_MEMBER,
            CompanyMembership.ROLE_MANAGER,
            CompanyMembership.ROLE_OWNER,
        ):
            user = User.objects.create_user(username=role.lower(), password="pass-123")
            CompanyMembership.objects.create(company=self.company, user=user, role=role)
            self.users[role] = user

    def _login(self, role):
        self.client.force_login(self.users[role])

    def _get(self, path, **params):
        return self.client.get(path, data=params, HTTP_X_TENANT_ID="acme")

    def _send(self, method, path, data):
        return getattr(self.client, method)(
            path,
            data=data,
            content_type="application/json",
            HTTP_X_TENANT_ID="acme",
        )

    # Grids

    def test_member_can_list_grids(self):
        self._login(CompanyMembership.ROLE_MEMBER)
        response = self._get("/api/commissions/grids/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["count"], 1)
        self.assertEqual(response.json()["results"][0]["total_rate"], "13.000")

    def test_only_owner_can_create_grid(self):
        payload = {
            "provider": "ICICI Lombard",
            "product_type": "Motor",
            "commission_rate": "12.5",
            "valid_from": "2024-01-01",
        }
        self._login(CompanyMembership.ROLE_MANAGER)
        self.assertEqual(self._send("post", "/api/commissions/grids/", payload).status_code, 403)

        self._login(CompanyMembership.ROLE_OWNER)
        response = self._send("post", "/api/commissions/grids/", payload)
        self.assertEqual(response.status_code, 201)
        grid = CommissionGrid.all_objects.get(pk=response.json()["id"])
        self.assertEqual(grid.company_id, self.company.id)
        self.assertEqual(grid.commission_rate, Decimal("12.500"))

    def test_overlapping_grid_is_rejected(self):
        self._login(CompanyMembership.ROLE_OWNER)
        response = self._send(
            "post",
            "/api/commissions/grids/",
            {
                "provider": " hdfc ergo ",
                "product_type": "motor",
                "commission_rate": "9",
                "valid_from": "2024-03-01",
            },
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(CommissionGrid.all_objects.filter(company=self.company).count(), 1)

    def test_reversed_window_is_rejected(self):
        self._login(CompanyMembership.ROLE_OWNER)
        response = self._send(
            "patch",
            f"/api/commissions/grids/{self.grid.id}/",
            {"valid_to": "2023-01-01"},
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("valid_to", response.json())

    def test_owner_can_update_grid(self):
        self._login(CompanyMembership.ROLE_OWNER)
        response = self._send(
            "patch",
            f"/api/commissions/grids/{self.grid.id}/",
            {"reward_rate": "3"},
        )
        self.assertEqual(response.status_code, 200)
        self.grid.refresh_from_db()
        self.assertEqual(self.grid.reward_rate, Decimal("3.000"))

    def test_grids_of_other_tenant_are_invisible(self):
        other = Company.objects.create(name="Beta", tenant_code="beta", subdomain="beta")
        foreign = CommissionGrid.all_objects.create(
            company=other,
            provider="HDFC Ergo",
            product_type="Motor",
            commission_rate=Decimal("5"),
            valid_from="2024-01-01",
        )
        self._login(CompanyMembership.ROLE_OWNER)
        self.assertEqual(self._get(f"/api/commissions/grids/{foreign.id}/").status_code, 404)

    def test_overlaps_endpoint_reports_conflicting_rows(self):
        CommissionGrid.all_objects.create(
            company=self.company,
            provider="hdfc ergo",
            product_type="MOTOR",
            commission_rate=Decimal("8"),
            valid_from="2024-06-01",
        )
        self._login(CompanyMembership.ROLE_MEMBER)
        response = self._get("/api/commissions/grids/overlaps/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["count"], 1)

    # Settings

    def test_settings_read_and_owner_update(self):
        self._login(CompanyMembership.ROLE_MEMBER)
        response = self._get("/api/commissions/settings/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["employee_share_percentage"], "30.00")

        self._login(CompanyMembership.ROLE_MANAGER)
        response = self._send("patch", "/api/commissions/settings/", {"employee_share_percentage": "25"})
        self.assertEqual(response.status_code, 403)

        self._login(CompanyMembership.ROLE_OWNER)
        response = self._send(
            "patch",
            "/api/commissions/settings/",
            {"employee_share_percentage": "25", "default_reporting_employee": self.manager.id},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["employee_share_percentage"], "25.00")

    def test_settings_reject_employee_of_other_tenant(self):
        other = Company.objects.create(name="Beta", tenant_code="beta", subdomain="beta")
        foreign = type(self.manager).all_objects.create(company=other, employee_code="X-1", name="Foreign")
        self._login(CompanyMembership.ROLE_OWNER)
        response = self._send(
            "patch",
            "/api/commissions/settings/",
            {"default_reporting_employee": foreign.id},
        )
        self.assertEqual(response.status_code, 400)

    # Recalculation

    def test_member_cannot_trigger_recalculation(self):
        self._login(CompanyMembership.ROLE_MEMBER)
        response = self._send("post", "/api/commissions/recalculate/", {})
        self.assertEqual(response.status_code, 403)

    def test_manager_triggers_recalculation(self):
        self._login(CompanyMembership.ROLE_MANAGER)
        response = self._send("post", "/api/commissions/recalculate/", {"max_workers": 1})
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["completed"], 5)
        self.assertEqual(payload["counts"]["calculated"], 3)
        self.assertEqual(len(payload["failures"]), 2)
        self.assertEqual(PolicyCommission.all_objects.filter(company=self.company).count(), 5)

    def test_recalculation_of_selected_policies(self):
        self._login(CompanyMembership.ROLE_MANAGER)
        response = self._send(
            "post",
            "/api/commissions/recalculate/",
            {"policy_ids": [self.p_agent.id, 987654], "max_workers": 1},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["completed"], 1)
        self.assertEqual(response.json()["missing_policy_ids"], [987654])

    def test_recalculation_rejects_bad_payload(self):
        self._login(CompanyMembership.ROLE_MANAGER)
        response = self._send("post", "/api/commissions/recalculate/", {"policy_ids": []})
        self.assertEqual(response.status_code, 400)

    # Reporting

    def test_report_lists_results_with_totals(self):
        recalculate_policies(self.company, max_workers=1)
        self._login(CompanyMembership.ROLE_MEMBER)

        response = self._get("/api/commissions/report/")
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["count"], 5)
        self.assertEqual(payload["totals"]["policies"], 5)
        self.assertEqual(Decimal(str(payload["totals"]["insurer_commission"])), Decimal("18200.00"))

        response = self._get("/api/commissions/report/", source_type="agent")
        payload = response.json()
        self.assertEqual(payload["count"], 1)
        self.assertEqual(payload["results"][0]["policy_number"], "POL-A")
        self.assertEqual(payload["results"][0]["agent_commission"], "7800.00")
        self.assertEqual(Decimal(str(payload["totals"]["broker_share"])), Decimal("5200.00"))

    def test_report_shows_and_filters_policy_status(self):
        recalculate_policies(self.company, max_workers=1)
        Policy.all_objects.filter(pk=self.p_agent.pk).update(status=Policy.Status.CANCELLED)
        self._login(CompanyMembership.ROLE_MEMBER)

        response = self._get("/api/commissions/report/", policy_status="cancelled")
        payload = response.json()
        self.assertEqual(payload["count"], 1)
        self.assertEqual(payload["results"][0]["policy_number"], "POL-A")
        self.assertEqual(payload["results"][0]["policy_status"], Policy.Status.CANCELLED)
        self.assertEqual(payload["totals"]["policies"], 1)

    def test_reversals_list_cancelled_policies_with_payouts(self):
        recalculate_policies(self.company, max_workers=1)
        Policy.all_objects.filter(pk__in=[self.p_agent.pk, self.p_direct.pk]).update(
            status=Policy.Status.CANCELLED
        )
        self._login(CompanyMembership.ROLE_MEMBER)

        response = self._get("/api/commissions/report/reversals/")
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["count"], 1)
        self.assertEqual(payload["results"][0]["policy_number"], "POL-A")
        self.assertEqual(payload["results"][0]["agent_commission"], "7800.00")

    def test_export_returns_csv_attachment(self):
        recalculate_policies(self.company, max_workers=1)
        self._login(CompanyMembership.ROLE_MEMBER)

        response = self._get("/api/commissions/report/export/", status="calculated")
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response["Content-Type"].startswith("text/csv"))
        self.assertIn("attachment;", response["Content-Disposition"])

        body = response.content.decode("utf-8").lstrip("\ufeff")
        rows = list(csv.DictReader(io.StringIO(body)))
        self.assertEqual(len(rows), 3)
        by_number = {row["policy_number"]: row for row in rows}
        self.assertEqual(by_number["POL-A"]["insurer_commission"], "13000.00")
        self.assertEqual(by_number["POL-A"]["broker_share"], "5200.00")
        self.assertEqual(by_number["POL-E"]["reporting_employee_commission"], "65.00")

    def test_policy_detail_includes_discrepancies(self):
        recalculate_policies(self.company, max_workers=1)
        self._login(CompanyMembership.ROLE_MEMBER)

        response = self._get(f"/api/commissions/policies/{self.p_agent.id}/")
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["status"], "calculated")
        self.assertEqual(payload["grid"], self.grid.id)
        self.assertEqual(payload["discrepancies"], [])

    def test_policy_detail_before_recalculation_is_not_found(self):
        self._login(CompanyMembership.ROLE_MEMBER)
        response = self._get(f"/api/commissions/policies/{self.p_agent.id}/")
        self.assertEqual(response.status_code, 404)

    def test_report_requires_authentication(self):
        response = self._get("/api/commissions/report/")
        self.assertIn(response.status_code, (401, 403))
