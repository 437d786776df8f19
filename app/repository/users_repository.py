from datetime import datetime, timezone
from typing import Optional, Tuple

import structlog
from postgrest import APIError
from postgrest.types import CountMethod
from sentry_sdk import capture_exception
from supabase import AsyncClient

from app.exceptions import EmailExistsError, UserNotFoundError
from app.models.users import User

logger = structlog.getLogger(__name__)

UNIQUE_VIOLATION = "23505"


class UsersRepository:
    table_name = "users"

    def __init__(self, db_client: AsyncClient):
        self.db = db_client
        self.repository = self.db.table(self.table_name)

    async def get_user(self, user_id: str) -> User:
        response = await self.repository.select("*").eq("id", str(user_id)).limit(1).execute()
        if not response.data:
            logger.warning("User does not exist", user_id=user_id)
            raise UserNotFoundError()
        return User(**response.data[0])

    async def get_user_by_email(self, email: str) -> Optional[User]:
        response = await self.repository.select("*").eq("email", email).limit(1).execute()
        if not response.data:
            return None
        return User(**response.data[0])

    async def create_user(self, email: str, password_hash: Optional[str] = None, **kwargs) -> User:
        try:
            response = await self.repository.insert(
                {
                    "email": email,
                    "password_hash": password_hash,
                    "created_at": datetime.now(timezone.utc).isoformat(),
                    **kwargs
                }, count=CountMethod.exact
            ).execute()
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                logger.info("Email already registered", email=email)
                raise EmailExistsError()
            logger.error("Failed to create user", error=str(e), email=email)
            capture_exception(e)
            raise e
        return User(**response.data[0])

    async def get_or_create_placeholder(self, email: str) -> Tuple[User, bool]:
        """Find the account for ``email`` or create one without a password."""
        user = await self.get_user_by_email(email)
        if user:
            return user, False
        try:
            return await self.create_user(email), True
        except EmailExistsError:
            # lost a race against a concurrent insert for the same email
            user = await self.get_user_by_email(email)
            if not user:
                raise
            return user, False
