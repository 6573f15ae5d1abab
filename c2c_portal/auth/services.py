"""
Service wiring for the auth subsystem.

Everything request handlers need is built once here from Settings and
stored on `app.state.auth`. Tests build their own AuthServices with an
in-memory store, a recording mailer and a fixed clock.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from c2c_portal.auth.jwt import TokenIssuer
from c2c_portal.auth.session import Mailer, SessionManager
from c2c_portal.auth.store import CredentialStore
from c2c_portal.config import AuthConfig, Settings
from c2c_portal.core.utils import utc_now
from c2c_portal.integrations.email import EmailService
from c2c_portal.integrations.oauth import GoogleIdentityVerifier, IdentityVerifier
from c2c_portal.storage import MetadataStorage, create_local_storage


@dataclass
class AuthServices:
    config: AuthConfig
    storage: MetadataStorage
    store: CredentialStore
    issuer: TokenIssuer
    sessions: SessionManager


def build_auth_services(
    settings: Settings,
    storage: MetadataStorage | None = None,
    email_service: Mailer | None = None,
    identity_verifier: IdentityVerifier | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> AuthServices:
    """Build the auth services, defaulting to the configured providers."""
    config = AuthConfig.from_settings(settings)
    storage = storage or create_local_storage()
    store = CredentialStore(storage)
    issuer = TokenIssuer(config, clock=clock)
    sessions = SessionManager(
        config,
        store,
        issuer,
        email_service=email_service or EmailService(settings),
        identity_verifier=identity_verifier or GoogleIdentityVerifier(config.google_client_id),
        clock=clock,
    )
    return AuthServices(
        config=config,
        storage=storage,
        store=store,
        issuer=issuer,
        sessions=sessions,
    )
