"""
Business Logic Services Package.

The ``create_services()`` factory wires the provider adapters, the
session store and the auth services together and returns a typed dict
that the UI layer consumes without knowing the dependency graph.
"""

from __future__ import annotations

from typing import TypedDict

from authportal.auth import SessionStore
from authportal.config import AppConfig
from authportal.connection import SupabaseConnection
from authportal.identity_provider import SupabaseIdentityProvider
from authportal.interfaces import IdentityProvider, NavigationLocator, ProfileStore
from authportal.logger import get_logger
from authportal.repositories.profile_repository import ProfileRepository
from authportal.services.auth_service import AuthService
from authportal.services.view_controller import ViewController


class ServiceContainer(TypedDict):
    """Typed container for all application services."""

    identity_provider: IdentityProvider
    profile_store: ProfileStore
    session_store: SessionStore
    auth_service: AuthService
    view_controller: ViewController


def create_services(
    config: AppConfig,
    connection: SupabaseConnection,
    locator: NavigationLocator,
) -> ServiceContainer:
    """
    Wire all adapters and services together.

    This is the single composition root for the service layer.  The
    entry point calls it once at startup.

    Args:
        config: Application configuration.
        connection: Supabase connection (connected or offline).
        locator: Navigation locator holding the launch URL.

    Returns:
        ServiceContainer mapping service names to fully-wired instances.
    """
    provider = SupabaseIdentityProvider(
        connection=connection,
        logger=get_logger("authportal.provider"),
    )
    profiles = ProfileRepository(
        connection=connection,
        logger=get_logger("authportal.profiles"),
        table=config.PROFILES_TABLE,
    )
    return build_services(config, provider, profiles, locator)


def build_services(
    config: AppConfig,
    provider: IdentityProvider,
    profiles: ProfileStore,
    locator: NavigationLocator,
) -> ServiceContainer:
    """Wire services over already-built collaborators (tests pass fakes)."""
    session_store = SessionStore(
        provider=provider,
        profiles=profiles,
        logger=get_logger("authportal.session"),
    )
    auth_service = AuthService(
        provider=provider,
        profiles=profiles,
        logger=get_logger("authportal.auth"),
        email_redirect_url=config.EMAIL_REDIRECT_URL or None,
        reset_redirect_url=config.RESET_REDIRECT_URL,
        min_password_length=config.MIN_PASSWORD_LENGTH,
        signout_delay_s=config.DEFERRED_SIGNOUT_DELAY_S,
    )
    view_controller = ViewController(
        auth_service=auth_service,
        session_store=session_store,
        provider=provider,
        locator=locator,
        logger=get_logger("authportal.views"),
        locale=config.LOCALE,
    )
    return ServiceContainer(
        identity_provider=provider,
        profile_store=profiles,
        session_store=session_store,
        auth_service=auth_service,
        view_controller=view_controller,
    )
