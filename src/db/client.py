"""Supabase client initialization."""

from supabase import AsyncClient, acreate_client

from src.config import get_settings


async def get_supabase_client() -> AsyncClient:
    """Create an async Supabase client using the service role key.

    Called once from the application lifespan; the client is shared through
    ``app.state.supabase``.
    """
    settings = get_settings()
    return await acreate_client(settings.supabase_url, settings.supabase_service_key)
