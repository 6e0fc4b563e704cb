"""
Unit tests for Dependency Injection providers.

Validates that:
- Process-wide clients come from @lru_cache provider functions
- DatabaseManager no longer uses a __new__ singleton
- Repositories and services take their collaborators as arguments
"""

import inspect
from unittest.mock import MagicMock, patch


class TestDIProviders:
    """Tests for @lru_cache DI provider functions."""

    def test_payment_provider_is_cached(self):
        """get_payment_provider should return the same instance."""
        from ndavault.api.dependencies import get_payment_provider

        get_payment_provider.cache_clear()
        try:
            assert get_payment_provider() is get_payment_provider()
        finally:
            get_payment_provider.cache_clear()

    def test_payment_provider_none_without_secret_key(self):
        from ndavault.api.dependencies import get_payment_provider
        from ndavault.config.settings import get_settings

        settings = get_settings().model_copy(update={"stripe_secret_key": None})
        get_payment_provider.cache_clear()
        try:
            with patch("ndavault.api.dependencies.get_settings", return_value=settings):
                assert get_payment_provider() is None
        finally:
            get_payment_provider.cache_clear()

    def test_user_directory_is_cached_and_lazy(self):
        """The Supabase client is only built on first lookup."""
        from ndavault.api.dependencies import get_user_directory

        get_user_directory.cache_clear()
        try:
            with patch("ndavault.infrastructure.auth.user_directory.create_client") as mock_create:
                directory = get_user_directory()
                assert directory is get_user_directory()
                mock_create.assert_not_called()
        finally:
            get_user_directory.cache_clear()

    def test_database_manager_no_singleton_pattern(self):
        from ndavault.infrastructure.db.database import DatabaseManager

        assert DatabaseManager.__new__ is object.__new__


class TestDIOverrides:
    """Tests validating DI override pattern for testing."""

    def test_repositories_accept_session(self):
        from ndavault.infrastructure.db.repositories import (
            AgreementRepository,
            SubscriptionRepository,
        )

        for repo_class in (SubscriptionRepository, AgreementRepository):
            params = [name for name in inspect.signature(repo_class.__init__).parameters if name != "self"]
            assert params == ["session"], f"{repo_class.__name__}: {params}"

    def test_services_take_collaborators(self):
        from ndavault.infrastructure.services import SubscriptionService, WebhookDispatcher

        repo, provider = MagicMock(), MagicMock()
        assert SubscriptionService(repo, provider).provider is provider
        assert WebhookDispatcher(repo, provider) is not None


class TestUserDirectory:

    async def test_lookup_failure_returns_none(self):
        from ndavault.infrastructure.auth.user_directory import SupabaseUserDirectory

        client = MagicMock()
        client.auth.admin.get_user_by_id.side_effect = RuntimeError("boom")
        directory = SupabaseUserDirectory(client=client)

        assert await directory.get_email("u1") is None

    async def test_lookup_returns_email(self):
        from ndavault.infrastructure.auth.user_directory import SupabaseUserDirectory

        client = MagicMock()
        client.auth.admin.get_user_by_id.return_value.user.email = "a@example.com"
        directory = SupabaseUserDirectory(client=client)

        assert await directory.get_email("u1") == "a@example.com"
