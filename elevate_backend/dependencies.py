"""
Dependency wiring for the FastAPI app.

Process-wide handles live on an ``AppContext`` stored in ``app.state``; the
getters below hand them to route dependencies.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Depends, Request

from elevate_backend.config import Settings, get_settings
from elevate_backend.db import DbClient, InMemoryDbClient, MongoDbClient
from elevate_backend.identity import (
    FirebaseIdentityVerifier,
    IdentityVerifier,
    InMemoryIdentityVerifier,
)
from elevate_backend.payments import (
    InMemoryPaymentProvider,
    PaymentProvider,
    StripePaymentProvider,
)

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    db: DbClient
    identity: IdentityVerifier
    payments: PaymentProvider


def build_db_client(settings: Settings) -> DbClient:
    if settings.use_in_memory_backends or not settings.mongodb_uri:
        logger.warning("Using in-memory document store")
        return InMemoryDbClient()
    return MongoDbClient(settings.mongodb_uri, settings.mongodb_db_name)


def build_identity_verifier(settings: Settings) -> IdentityVerifier:
    if settings.use_in_memory_backends or not (
        settings.firebase_service_key or settings.firebase_credentials_path
    ):
        # Knows no tokens, so every authenticated route answers 401.
        logger.warning("Using in-memory identity verifier")
        return InMemoryIdentityVerifier()
    return FirebaseIdentityVerifier(
        service_key=settings.firebase_service_key,
        credentials_path=settings.firebase_credentials_path,
    )


def build_payment_provider(settings: Settings) -> PaymentProvider:
    if settings.use_in_memory_backends or not settings.stripe_secret_key:
        logger.warning("Using in-memory payment provider")
        return InMemoryPaymentProvider()
    return StripePaymentProvider(api_key=settings.stripe_secret_key)


def build_context(settings: Settings | None = None) -> AppContext:
    settings = settings or get_settings()
    return AppContext(
        settings=settings,
        db=build_db_client(settings),
        identity=build_identity_verifier(settings),
        payments=build_payment_provider(settings),
    )


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_app_settings(context: AppContext = Depends(get_context)) -> Settings:
    return context.settings


def get_db_client(context: AppContext = Depends(get_context)) -> DbClient:
    return context.db


def get_identity_verifier(
    context: AppContext = Depends(get_context),
) -> IdentityVerifier:
    return context.identity


def get_payment_provider(
    context: AppContext = Depends(get_context),
) -> PaymentProvider:
    return context.payments
