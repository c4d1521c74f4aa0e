from supabase import create_client, Client
from upsc_pyq.config import get_settings


def get_supabase() -> Client:
    """Get Supabase client instance."""
    settings = get_settings()
    supabase: Client = create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)
    return supabase


def get_supabase_admin() -> Client:
    """Get Supabase client instance with admin privileges.

    Used for curated imports, which bypass row-level ownership policies.
    """
    settings = get_settings()
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)
