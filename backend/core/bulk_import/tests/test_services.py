import csv
import io
from decimal import Decimal
from unittest import mock

from django.core.files.uploadedfile import SimpleUploadedFile
from django.db import IntegrityError
from django.test import TestCase, override_settings

from bulk_import.models import ImportErrorLog, ImportSession
from bulk_import.schemas import AgentRow
from bulk_import.services import (
    ERROR_REPORT_COLUMNS,
    import_csv,
    write_error_report,
    write_template,
)
from commission.models import CommissionGrid
from customers.models import Company
from insurance_core.models import Policy
from sourcing.models import Agent, CommissionTier, Employee


def _upload(text, name="upload.csv"):
    if isinstance(text, str):
        text = text.encode("utf-8")
    return SimpleUploadedFile(name, text, content_type="text/csv")


class ImportFixtureMixin:
    def setUp(self):
        self.company = Company.objects.create(name="Acme", tenant_code="acme", subdomain="acme")
        self.tier = CommissionTier.all_objects.create(
            company=self.company, name="Gold", base_percentage=Decimal("50")
        )
        self.employee = Employee.all_objects.create(
            company=self.company, employee_code="E-1", name="Meera"
        )

    def _errors(self, session):
        return list(
            ImportErrorLog.all_objects.filter(session=session).order_by("row_number", "id")
        )


class AgentImportTests(ImportFixtureMixin, TestCase):
    CSV = (
        "Agent Code,Name,Tier Name,Override Percentage,Reporting Employee Code,PAN Number,Nickname\n"
        "AG-1,Asha,gold,60,E-1,abcde1234f,ash\n"
        "AG-2,Vikram,Platinum,,,,\n"
        "AG-3,Ravi,,150,,,\n"
        "ag-1,Duplicate,,,,,\n"
        "AG-4,Neha,,,E-404,,\n"
    )

    def test_valid_rows_are_saved_and_failures_are_logged(self):
        session = import_csv(self.company, "agents", _upload(self.CSV))

        self.assertEqual(session.status, ImportSession.Status.COMPLETED)
        self.assertEqual(session.total_rows, 5)
        self.assertEqual(session.created_rows, 1)
        self.assertEqual(session.failed_rows, 4)
        self.assertEqual(session.succeeded_rows, 1)

        agent = Agent.all_objects.get(company=self.company, agent_code="AG-1")
        self.assertEqual(agent.tier_id, self.tier.id)
        self.assertEqual(agent.reporting_employee_id, self.employee.id)
        self.assertEqual(agent.override_percentage, Decimal("60.00"))
        self.assertEqual(agent.pan_number, "ABCDE1234F")

        errors = self._errors(session)
        self.assertEqual(
            [(error.row_number, error.field) for error in errors],
            [
                (3, "tier_name"),
                (4, "override_percentage"),
                (5, "agent_code"),
                (6, "reporting_employee_code"),
            ],
        )
        self.assertEqual(errors[0].value, "Platinum")
        self.assertIn("row 2", errors[2].message)
        self.assertTrue(all(error.error_type == "validation_error" for error in errors))

    def test_failed_row_does_not_claim_its_key(self):
        session = import_csv(
            self.company,
            "agents",
            _upload("agent_code,name,override_percentage\nAG-1,Asha,150\nag-1,Asha,60\nAG-1,Asha,70\n"),
        )

        self.assertEqual(session.created_rows, 1)
        self.assertEqual(session.failed_rows, 2)
        errors = self._errors(session)
        self.assertEqual(
            [(error.row_number, error.field) for error in errors],
            [(2, "override_percentage"), (4, "agent_code")],
        )
        self.assertIn("row 3", errors[1].message)
        agent = Agent.all_objects.get(company=self.company, agent_code__iexact="AG-1")
        self.assertEqual(agent.override_percentage, Decimal("60.00"))

    def test_reimport_updates_existing_rows(self):
        import_csv(self.company, "agents", _upload(self.CSV))
        session = import_csv(
            self.company,
            "agents",
            _upload("agent_code,name\nAG-1,Asha Rao\nAG-9,New Agent\n"),
        )

        self.assertEqual(session.updated_rows, 1)
        self.assertEqual(session.created_rows, 1)
        agent = Agent.all_objects.get(company=self.company, agent_code="AG-1")
        self.assertEqual(agent.name, "Asha Rao")
        self.assertEqual(agent.tier_id, self.tier.id)

    def test_store_error_is_logged_per_row(self):
        with mock.patch.object(AgentRow, "persist", side_effect=IntegrityError("database is locked")):
            session = import_csv(self.company, "agents", _upload("agent_code,name\nAG-1,Asha\n"))

        self.assertEqual(session.failed_rows, 1)
        errors = self._errors(session)
        self.assertEqual(errors[0].error_type, ImportErrorLog.ErrorType.STORE)
        self.assertFalse(Agent.all_objects.filter(company=self.company).exists())

    def test_rows_belong_to_the_importing_tenant_only(self):
        other = Company.objects.create(name="Beta", tenant_code="beta", subdomain="beta")
        CommissionTier.all_objects.create(company=other, name="Silver", base_percentage=Decimal("40"))

        session = import_csv(
            self.company,
            "agents",
            _upload("agent_code,name,tier_name\nAG-1,Asha,Silver\n"),
        )

        self.assertEqual(session.failed_rows, 1)
        self.assertEqual(self._errors(session)[0].field, "tier_name")


class FileRejectionTests(ImportFixtureMixin, TestCase):
    def test_missing_required_column_rejects_file(self):
        session = import_csv(self.company, "agents", _upload("agent_code,email\nAG-1,a@b.com\n"))

        self.assertEqual(session.status, ImportSession.Status.REJECTED)
        self.assertIn("name", session.rejection_reason)
        self.assertEqual(session.total_rows, 0)
        self.assertFalse(Agent.all_objects.filter(company=self.company).exists())

    @override_settings(BULK_IMPORT_MAX_ROWS=2)
    def test_row_limit_rejects_file(self):
        session = import_csv(
            self.company,
            "agents",
            _upload("agent_code,name\nAG-1,A\nAG-2,B\nAG-3,C\n"),
        )

        self.assertEqual(session.status, ImportSession.Status.REJECTED)
        self.assertIn("row limit", session.rejection_reason)
        self.assertFalse(Agent.all_objects.filter(company=self.company).exists())

    @override_settings(BULK_IMPORT_MAX_FILE_BYTES=10)
    def test_size_limit_rejects_file(self):
        session = import_csv(self.company, "agents", _upload("agent_code,name\nAG-1,Asha\n"))
        self.assertEqual(session.status, ImportSession.Status.REJECTED)

    def test_non_utf8_and_empty_files_are_rejected(self):
        session = import_csv(self.company, "agents", _upload(b"agent_code,name\n\xff\xfe,x\n"))
        self.assertEqual(session.status, ImportSession.Status.REJECTED)

        session = import_csv(self.company, "agents", _upload(""))
        self.assertEqual(session.status, ImportSession.Status.REJECTED)

    def test_bom_and_blank_lines_are_tolerated(self):
        session = import_csv(
            self.company,
            "employees",
            _upload("\ufeffemployee_code,name,reporting_manager_code\n\nE-2,Suresh,E-1\n,,\n"),
        )

        self.assertEqual(session.status, ImportSession.Status.COMPLETED)
        self.assertEqual(session.total_rows, 1)
        self.assertEqual(
            Employee.all_objects.get(company=self.company, employee_code="E-2").reporting_manager_id,
            self.employee.id,
        )

    def test_unknown_entity_type(self):
        with self.assertRaises(ValueError):
            import_csv(self.company, "invoices", _upload("a\n1\n"))


class GridAndPolicyImportTests(ImportFixtureMixin, TestCase):
    def test_grid_rows_accept_local_date_formats_and_reject_overlaps(self):
        session = import_csv(
            self.company,
            "commission_grids",
            _upload(
                "provider,product_type,commission_rate,reward_rate,valid_from,valid_to\n"
                "HDFC Ergo,Motor,10,2,01/01/2024,\n"
                "HDFC Ergo,Motor,9,,15-03-2024,\n"
                "ICICI Lombard,Health,8,,2024-01-01,2023-01-01\n"
            ),
        )

        self.assertEqual(session.created_rows, 1)
        self.assertEqual(session.failed_rows, 2)
        grid = CommissionGrid.all_objects.get(company=self.company)
        self.assertEqual(str(grid.valid_from), "2024-01-01")
        self.assertEqual(grid.reward_rate, Decimal("2.000"))
        self.assertEqual([error.row_number for error in self._errors(session)], [3, 4])
        self.assertEqual(self._errors(session)[1].field, "valid_to")

    def test_policy_rows_resolve_sources_by_code(self):
        Agent.all_objects.create(company=self.company, agent_code="AG-1", name="Asha")

        session = import_csv(
            self.company,
            "policies",
            _upload(
                "policy_number,customer_name,product_type,provider,premium_amount,issue_date,"
                "source_type,source_code\n"
                "POL-1,Ravi,Motor,HDFC Ergo,15000,01/06/2024,agent,ag-1\n"
                "POL-2,Neha,Motor,HDFC Ergo,1000,2024-06-01,org_direct,\n"
                "POL-3,Amit,Motor,HDFC Ergo,1000,2024-06-01,agent,\n"
                "POL-4,Kiran,Motor,HDFC Ergo,abc,2024-06-01,misp,Speed Motors\n"
            ),
        )

        self.assertEqual(session.created_rows, 2)
        self.assertEqual(session.failed_rows, 2)
        policy = Policy.all_objects.get(company=self.company, policy_number="POL-1")
        self.assertEqual(policy.source_type, Policy.SourceType.AGENT)
        self.assertEqual(policy.agent.agent_code, "AG-1")
        self.assertEqual(
            [(error.row_number, error.field) for error in self._errors(session)],
            [(4, "source_code"), (5, "premium_amount")],
        )


class CsvWriterTests(ImportFixtureMixin, TestCase):
    def test_error_report_lists_every_failed_row(self):
        session = import_csv(
            self.company,
            "agents",
            _upload("agent_code,name,tier_name\nAG-1,Asha,Missing\nAG-2,Vikram,\n"),
        )
        stream = io.StringIO()
        written = write_error_report(stream, self._errors(session))

        rows = list(csv.reader(io.StringIO(stream.getvalue())))
        self.assertEqual(written, 1)
        self.assertEqual(tuple(rows[0]), ERROR_REPORT_COLUMNS)
        self.assertEqual(rows[1][:3], ["2", "tier_name", "Missing"])

    def test_template_lists_schema_columns(self):
        stream = io.StringIO()
        write_template(stream, "policies")
        header = next(csv.reader(io.StringIO(stream.getvalue())))
        self.assertEqual(header[0], "policy_number")
        self.assertIn("source_code", header)
