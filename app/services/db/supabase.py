from supabase import AsyncClient
from supabase.client import create_async_client
from supabase.lib.client_options import AsyncClientOptions

from app.models.config import DBConfig
from app.services.db.base import BaseDBConnectionService


class SupabaseConnectionService(BaseDBConnectionService):
    db: AsyncClient | None = None

    def __init__(self, config: DBConfig, timeout: float):
        self.config = config
        self.timeout = timeout

    async def _connect(self, **kwargs):
        if not self.db:
            self.db = await create_async_client(
                self.config.url,
                self.config.service_role_key,
                AsyncClientOptions(
                    postgrest_client_timeout=self.timeout,
                    **kwargs
                )
            )
        return self.db
