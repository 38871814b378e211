import unittest
from unittest.mock import MagicMock

from fastapi import HTTPException

from elevate_backend.auth import (
    extract_bearer_token,
    get_current_principal,
    is_admin,
    require_admin,
    stored_role,
)
from elevate_backend.db import InMemoryDbClient
from elevate_backend.identity import InMemoryIdentityVerifier, InvalidTokenError, Principal
from elevate_backend.schemas import Role


class BearerTokenTests(unittest.TestCase):
    def test_extracts_token(self):
        self.assertEqual(extract_bearer_token("Bearer abc.def"), "abc.def")
        self.assertEqual(extract_bearer_token("bearer abc"), "abc")

    def test_rejects_malformed_headers(self):
        for value in (None, "", "Bearer", "Bearer ", "Basic abc", "abc", "Bearer a b"):
            self.assertIsNone(extract_bearer_token(value), value)


class CurrentPrincipalTests(unittest.TestCase):
    def test_missing_header_skips_verifier(self):
        identity = MagicMock()
        with self.assertRaises(HTTPException) as ctx:
            get_current_principal(authorization=None, identity=identity)
        self.assertEqual(ctx.exception.status_code, 401)
        identity.verify.assert_not_called()

    def test_malformed_header_skips_verifier(self):
        identity = MagicMock()
        with self.assertRaises(HTTPException) as ctx:
            get_current_principal(authorization="Token abc", identity=identity)
        self.assertEqual(ctx.exception.status_code, 401)
        identity.verify.assert_not_called()

    def test_verifier_failure_is_unauthorized(self):
        identity = MagicMock()
        identity.verify.side_effect = InvalidTokenError("expired")
        with self.assertRaises(HTTPException) as ctx:
            get_current_principal(authorization="Bearer abc", identity=identity)
        self.assertEqual(ctx.exception.status_code, 401)
        self.assertEqual(ctx.exception.headers, {"WWW-Authenticate": "Bearer"})
        identity.verify.assert_called_once_with("abc")

    def test_returns_verified_principal(self):
        identity = InMemoryIdentityVerifier()
        identity.register("tok", "a@example.com", uid="uid-1")
        principal = get_current_principal(authorization="Bearer tok", identity=identity)
        self.assertEqual(principal, Principal(email="a@example.com", uid="uid-1"))


class RoleGateTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.db.insert_user({"email": "admin@example.com", "role": "admin"})
        self.db.insert_user({"email": "mod@example.com", "role": "moderator"})
        self.db.insert_user({"email": "odd@example.com", "role": "wizard"})

    def test_stored_role(self):
        self.assertIs(stored_role(self.db, "admin@example.com"), Role.ADMIN)
        self.assertIs(stored_role(self.db, "mod@example.com"), Role.MODERATOR)
        self.assertIsNone(stored_role(self.db, "odd@example.com"))
        self.assertIsNone(stored_role(self.db, "ghost@example.com"))

    def test_admin_passes(self):
        principal = Principal(email="admin@example.com")
        self.assertIs(require_admin(principal=principal, db=self.db), principal)
        self.assertTrue(is_admin(self.db, "admin@example.com"))

    def test_non_admins_are_forbidden(self):
        for email in ("mod@example.com", "odd@example.com", "ghost@example.com"):
            with self.assertRaises(HTTPException) as ctx:
                require_admin(principal=Principal(email=email), db=self.db)
            self.assertEqual(ctx.exception.status_code, 403)


if __name__ == "__main__":
    unittest.main()
