import logging

from django.test import SimpleTestCase

from tenancy.logging import MaskPersonalIdFilter, mask_personal_ids


class MaskPersonalIdTests(SimpleTestCase):
    def test_masks_pan_aadhaar_and_mobile(self):
        msg = "pan=ABCDE1234F aadhaar=1234 5678 9012 phone=+91 9876543210"
        masked = mask_personal_ids(msg)
        self.assertNotIn("ABCDE1234F", masked)
        self.assertNotIn("1234 5678 9012", masked)
        self.assertNotIn("9876543210", masked)
        self.assertIn("***PAN***", masked)
        self.assertIn("***AADHAAR***", masked)
        self.assertIn("***MOBILE***", masked)

    def test_leaves_policy_numbers_and_amounts_alone(self):
        msg = "policy=POL-2024-001 premium=100000.00"
        self.assertEqual(mask_personal_ids(msg), msg)

    def test_logging_filter_masks_message(self):
        record = logging.LogRecord(
            name="test",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg="agent pan=%s",
            args=("ABCDE1234F",),
            exc_info=None,
        )
        MaskPersonalIdFilter().filter(record)
        self.assertIn("***PAN***", record.msg)
        self.assertNotIn("ABCDE1234F", record.msg)
        self.assertEqual(record.args, ())
