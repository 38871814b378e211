"""
Identity verification for bearer credentials.

Firebase Authentication backs production; the in-memory verifier maps fixed
tokens to principals for local runs and tests.
"""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

import firebase_admin
from firebase_admin import auth, credentials
from firebase_admin import exceptions as firebase_exceptions


@dataclass(frozen=True)
class Principal:
    """Verified identity attached to a request."""

    email: str
    uid: Optional[str] = None


class InvalidTokenError(Exception):
    """Raised when a bearer credential cannot be verified."""


class IdentityVerifier(Protocol):
    def verify(self, token: str) -> Principal:
        ...


def _load_service_key(service_key: str) -> dict:
    return json.loads(base64.b64decode(service_key).decode("utf-8"))


class FirebaseIdentityVerifier:
    """Verifies Firebase ID tokens with the Admin SDK."""

    def __init__(
        self,
        service_key: Optional[str] = None,
        credentials_path: Optional[str] = None,
        app_name: str = "[DEFAULT]",
    ):
        if service_key:
            cred = credentials.Certificate(_load_service_key(service_key))
        elif credentials_path:
            cred = credentials.Certificate(credentials_path)
        else:
            raise ValueError(
                "FB_SERVICE_KEY or FIREBASE_CREDENTIALS_PATH is required for "
                "FirebaseIdentityVerifier"
            )
        try:
            self._app = firebase_admin.get_app(app_name)
        except ValueError:
            self._app = firebase_admin.initialize_app(cred, name=app_name)

    def verify(self, token: str) -> Principal:
        try:
            decoded = auth.verify_id_token(token, app=self._app)
        except auth.CertificateFetchError:
            # Provider outage, not a bad credential.
            raise
        except (ValueError, firebase_exceptions.FirebaseError) as exc:
            raise InvalidTokenError(str(exc)) from exc
        email = decoded.get("email")
        if not email:
            raise InvalidTokenError("token carries no email claim")
        return Principal(email=email, uid=decoded.get("uid") or decoded.get("sub"))


@dataclass
class InMemoryIdentityVerifier:
    """Test double mapping opaque tokens to principals."""

    tokens: Dict[str, Principal] = field(default_factory=dict)

    def register(self, token: str, email: str, uid: Optional[str] = None) -> Principal:
        principal = Principal(email=email, uid=uid)
        self.tokens[token] = principal
        return principal

    def verify(self, token: str) -> Principal:
        principal = self.tokens.get(token)
        if principal is None:
            raise InvalidTokenError("unknown token")
        return principal
