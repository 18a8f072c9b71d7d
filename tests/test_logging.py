"""Structured logging and audit trail tests."""

import json
import logging
import unittest

from dripauth.logging_config import (
    AuditLogger,
    StructuredFormatter,
    get_request_id,
    set_request_id,
)


class _Capture(logging.Handler):

    def __init__(self):
        super().__init__(level=logging.DEBUG)
        self.records = []

    def emit(self, record):
        self.records.append(record)


class TestAuditLogger(unittest.TestCase):

    def setUp(self):
        self.capture = _Capture()
        self.logger = logging.getLogger("dripauth.audit.test")
        self.logger.setLevel(logging.DEBUG)
        self.logger.addHandler(self.capture)
        self.audit = AuditLogger("dripauth.audit.test")

    def tearDown(self):
        self.logger.removeHandler(self.capture)

    def test_rejection_fields(self):
        self.audit.drip_rejected("github", reason="CooldownNotElapsed", state="REPLAY_CHECKED")
        [record] = self.capture.records
        self.assertEqual(record.levelno, logging.WARNING)
        self.assertEqual(record.extra_fields["event_type"], "DRIP_REJECTED")
        self.assertEqual(record.extra_fields["reason"], "CooldownNotElapsed")

    def test_transfer_failure_is_error(self):
        self.audit.drip_rejected("github", reason="TransferFailed", state="AUTHORIZED")
        self.assertEqual(self.capture.records[0].levelno, logging.ERROR)

    def test_security_event_severity(self):
        self.audit.security_event("non_admin_mutation", severity="high", caller="mallory")
        [record] = self.capture.records
        self.assertEqual(record.levelno, logging.ERROR)
        self.assertEqual(record.extra_fields["caller"], "mallory")

    def test_disabled_level_skipped(self):
        self.logger.setLevel(logging.ERROR)
        self.audit.drip_request("github", "0xr", "0x1", "31")
        self.assertEqual(self.capture.records, [])


class TestStructuredFormatter(unittest.TestCase):

    def test_json_output(self):
        set_request_id("req-42")
        self.assertEqual(get_request_id(), "req-42")

        record = logging.LogRecord("dripauth", logging.INFO, __file__, 1, "hello", (), None)
        record.extra_fields = {"amount": 10 ** 20, "identifier": b"\x01"}
        data = json.loads(StructuredFormatter().format(record))

        self.assertEqual(data["message"], "hello")
        self.assertEqual(data["request_id"], "req-42")
        self.assertEqual(data["amount"], 10 ** 20)
        self.assertEqual(data["identifier"], str(b"\x01"))

    def test_generated_request_id(self):
        self.assertTrue(set_request_id())


if __name__ == '__main__':
    unittest.main()
