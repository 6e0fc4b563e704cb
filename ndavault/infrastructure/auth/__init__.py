"""Auth-provider infrastructure (Supabase)."""

from ndavault.infrastructure.auth.user_directory import SupabaseUserDirectory

__all__ = ["SupabaseUserDirectory"]
