import unittest

from casaos_appstore.models import ServiceConfig
from casaos_appstore.ownership import format_user, is_valid_id, should_inject_user


class OwnershipPolicyTests(unittest.TestCase):
    def test_valid_ids(self):
        for value in ("0", "1000", " 33 "):
            with self.subTest(value=value):
                self.assertTrue(is_valid_id(value))
        for value in ("", "-1", "1.5", "root", None):
            with self.subTest(value=value):
                self.assertFalse(is_valid_id(value))

    def test_service_without_user_gets_injected(self):
        service = ServiceConfig(name="web")
        self.assertTrue(should_inject_user(service, "1000", "1000"))
        self.assertEqual(format_user("1000", "100"), "1000:100")

    def test_existing_user_is_never_overridden(self):
        service = ServiceConfig(name="web", user="nobody")
        for puid, pgid in (("1000", "1000"), ("x", "y"), ("", "")):
            with self.subTest(puid=puid, pgid=pgid):
                self.assertFalse(should_inject_user(service, puid, pgid))

    def test_invalid_ids_disable_injection(self):
        service = ServiceConfig(name="web")
        self.assertFalse(should_inject_user(service, "1000", "abc"))
        self.assertFalse(should_inject_user(service, "-5", "1000"))

    def test_puid_in_environment_only_matters_in_strict_mode(self):
        service = ServiceConfig(name="web", environment={"puid": "1000"})
        self.assertTrue(should_inject_user(service, "1000", "1000"))
        self.assertFalse(should_inject_user(service, "1000", "1000", strict=True))


if __name__ == "__main__":
    unittest.main()
