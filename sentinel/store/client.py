"""Supabase client construction."""
import logging
from supabase import create_client, Client

from sentinel.config import Config, config

logger = logging.getLogger(__name__)


def create_store_client(cfg: Config = config) -> Client:
    """Build the Supabase client shared by the registry and the writer.

    Raises ConfigurationError when the endpoint or service role key is missing.
    """
    cfg.validate()
    logger.info(f"Connecting to Supabase at {cfg.SUPABASE_URL}")
    return create_client(cfg.SUPABASE_URL, cfg.SUPABASE_SERVICE_ROLE)
