import json
import logging
import os
import unittest
from datetime import date
from unittest.mock import patch

from jose import jwt

from eventstaff.audit import hash_ip
from eventstaff.errors import ApiError
from eventstaff.logging_utils import JsonFormatter, resolve_level
from eventstaff.models import UserRole
from eventstaff.schemas import HoursType
from eventstaff.security import claims_role, create_access_token, decode_token, require_roles
from eventstaff.settings import get_settings


class SecurityTests(unittest.TestCase):
    def setUp(self) -> None:
        self.env = patch.dict(os.environ, {"JWT_SECRET": "unit-test-secret", "IP_HASH_SALT": "pepper"})
        self.env.start()
        get_settings.cache_clear()

    def tearDown(self) -> None:
        self.env.stop()
        get_settings.cache_clear()

    def test_token_roundtrip(self) -> None:
        token, claims = create_access_token(
            sub="user-1",
            role=UserRole.RESPONSABILE,
            company_id="co-1",
            name="Anna Verdi",
        )
        payload = decode_token(token)

        self.assertEqual(payload["sub"], "user-1")
        self.assertEqual(payload["role"], "RESPONSABILE")
        self.assertEqual(payload["company_id"], "co-1")
        self.assertEqual(payload["jti"], claims["jti"])
        self.assertEqual(claims_role(payload), UserRole.RESPONSABILE)

    def test_wrong_audience_is_rejected(self) -> None:
        _, claims = create_access_token(sub="user-1", role=UserRole.ADMIN)
        forged = jwt.encode({**claims, "aud": "someone-else"}, "unit-test-secret", algorithm="HS256")

        with self.assertRaises(ApiError) as ctx:
            decode_token(forged)
        self.assertEqual(ctx.exception.status_code, 401)
        self.assertEqual(ctx.exception.code, "INVALID_TOKEN")

    def test_wrong_secret_is_rejected(self) -> None:
        _, claims = create_access_token(sub="user-1", role=UserRole.ADMIN)
        forged = jwt.encode(claims, "another-secret", algorithm="HS256")

        with self.assertRaises(ApiError):
            decode_token(forged)

    def test_unknown_role(self) -> None:
        self.assertIsNone(claims_role({"role": "GUEST"}))
        self.assertIsNone(claims_role({}))

    def test_require_roles_needs_a_role(self) -> None:
        with self.assertRaises(ValueError):
            require_roles()

    def test_ip_hash_is_salted(self) -> None:
        hashed = hash_ip("10.0.0.1")
        self.assertEqual(len(hashed), 64)
        self.assertNotEqual(hashed, hash_ip("10.0.0.2"))
        self.assertIsNone(hash_ip(None))


class JsonFormatterTests(unittest.TestCase):
    def test_extra_fields_are_serialized(self) -> None:
        record = logging.LogRecord("eventstaff.reports", logging.INFO, __file__, 1, "report_generated", None, None)
        record.report_type = "cliente"
        record.assignment_count = 3

        payload = json.loads(JsonFormatter().format(record))

        self.assertEqual(payload["message"], "report_generated")
        self.assertEqual(payload["logger"], "eventstaff.reports")
        self.assertEqual(payload["report_type"], "cliente")
        self.assertEqual(payload["assignment_count"], 3)
        self.assertNotIn("args", payload)

    def test_service_and_report_values_are_rendered(self) -> None:
        record = logging.LogRecord("eventstaff.reports", logging.INFO, __file__, 1, "report_generated", None, None)
        record.hours_type = HoursType.SCHEDULED
        record.start_date = date(2026, 3, 1)

        payload = json.loads(JsonFormatter(service="EventStaffReports").format(record))

        self.assertEqual(payload["service"], "EventStaffReports")
        self.assertEqual(payload["hours_type"], "scheduled")
        self.assertEqual(payload["start_date"], "2026-03-01")
        self.assertNotIn("service", json.loads(JsonFormatter().format(record)))

    def test_level_names_are_resolved(self) -> None:
        self.assertEqual(resolve_level("debug"), logging.DEBUG)
        self.assertEqual(resolve_level(" WARNING "), logging.WARNING)
        self.assertEqual(resolve_level(logging.ERROR), logging.ERROR)
        with self.assertRaises(ValueError):
            resolve_level("chatty")


if __name__ == "__main__":
    unittest.main()
