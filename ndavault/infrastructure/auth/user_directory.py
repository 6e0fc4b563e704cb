"""
User Directory

Looks up account details (email) for user ids via the Supabase Auth admin
API. Needed by batch jobs, which run without a request-bound identity.
"""

import asyncio
import logging
from typing import Optional

from supabase import Client, create_client

from ndavault.config.settings import Settings, get_settings


logger = logging.getLogger(__name__)


class SupabaseUserDirectory:
    """Resolves user ids to email addresses with the service-role key."""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[Client] = None):
        self._settings = settings or get_settings()
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = create_client(
                self._settings.supabase_url,
                self._settings.supabase_service_role_key,
            )
        return self._client

    def _lookup(self, user_id: str) -> Optional[str]:
        response = self.client.auth.admin.get_user_by_id(user_id)
        user = getattr(response, "user", None)
        return getattr(user, "email", None)

    async def get_email(self, user_id: str) -> Optional[str]:
        """
        Return the user's email, or None when it cannot be resolved.

        Lookup failures are logged, not raised: a missing address only
        degrades one alert preview.
        """
        try:
            return await asyncio.to_thread(self._lookup, user_id)
        except Exception as e:
            logger.warning(f"Email lookup failed for user {user_id}: {e}")
            return None
