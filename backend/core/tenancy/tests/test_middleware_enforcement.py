from django.contrib.auth import get_user_model
from django.test import TestCase

from customers.models import Company, CompanyMembership


class TenantStatusMiddlewareTests(TestCase):
    def setUp(self):
        self.company = Company.objects.create(
            name="Suspended Brokers",
            tenant_code="suspended-brokers",
            subdomain="suspended-brokers",
            status=Company.STATUS_SUSPENDED,
        )
        self.user = get_user_model().objects.create_user(username="owner", password="pass-123")
        CompanyMembership.objects.create(
            company=self.company,
            user=self.user,
            role=CompanyMembership.ROLE_OWNER,
        )

    def test_blocks_tenant_api_when_tenant_not_active(self):
        self.client.force_login(self.user)
        response = self.client.get(
            "/api/policies/",
            HTTP_X_TENANT_ID="suspended-brokers",
            HTTP_X_CORRELATION_ID="corr-test-001",
        )
        self.assertEqual(response.status_code, 423)
        payload = response.json()
        self.assertEqual(payload["reason"], Company.STATUS_SUSPENDED)
        self.assertEqual(payload["correlation_id"], "corr-test-001")
        self.assertEqual(response["X-Correlation-ID"], "corr-test-001")

    def test_allows_exempt_token_endpoint_when_tenant_suspended(self):
        response = self.client.post(
            "/api/auth/token/",
            data={"username": "x", "password": "y"},
            content_type="application/json",
            HTTP_X_TENANT_ID="suspended-brokers",
        )
        self.assertNotEqual(response.status_code, 423)

    def test_unknown_tenant_is_rejected(self):
        self.client.force_login(self.user)
        response = self.client.get("/api/policies/", HTTP_X_TENANT_ID="nope")
        self.assertEqual(response.status_code, 404)

    def test_missing_tenant_is_rejected(self):
        self.client.force_login(self.user)
        response = self.client.get("/api/policies/")
        self.assertEqual(response.status_code, 400)
        self.assertIn("X-Correlation-ID", response)
