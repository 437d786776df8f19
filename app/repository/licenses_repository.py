from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

import structlog
from postgrest import APIError
from postgrest.types import CountMethod
from sentry_sdk import capture_exception
from supabase import AsyncClient

from app.models.license import License, LicenseStatus

logger = structlog.getLogger(__name__)

UNIQUE_VIOLATION = "23505"


class LicenseConflictError(Exception):
    """A unique constraint on ``licenses`` rejected an insert."""


def _serialize(values: Dict[str, Any]) -> Dict[str, Any]:
    return {
        k: v.isoformat() if isinstance(v, datetime) else str(v) if isinstance(v, LicenseStatus) else v
        for k, v in values.items()
    }


class LicensesRepository:
    table_name = "licenses"
    session_key = "metadata->>stripe_session"

    def __init__(self, db_client: AsyncClient):
        self.db = db_client
        self.repository = self.db.table(self.table_name)

    async def get_by_code(self, code: str) -> Optional[License]:
        response = await self.repository.select("*").eq("code", code).limit(1).execute()
        if not response.data:
            return None
        return License(**response.data[0])

    async def get_by_session_id(self, session_id: str) -> Optional[License]:
        response = await self.repository.select("*").eq(self.session_key, session_id).limit(1).execute()
        if not response.data:
            return None
        return License(**response.data[0])

    async def create_many(self, rows: List[Dict[str, Any]]) -> List[License]:
        try:
            response = await self.repository.insert(
                [_serialize(row) for row in rows], count=CountMethod.exact
            ).execute()
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                logger.warning("License insert hit a unique constraint", error=e.message)
                raise LicenseConflictError(e.message)
            logger.error("Failed to create license", error=str(e))
            capture_exception(e)
            raise e
        return [License(**row) for row in response.data]

    async def transition(
            self,
            code: str,
            from_statuses: Iterable[LicenseStatus],
            to_status: LicenseStatus,
            **values,
    ) -> Optional[License]:
        """
        Conditional update: the row changes only while its status is one of ``from_statuses``
        (legacy spellings included), checked by the store in the same statement.
        Returns the updated license, or ``None`` if no row matched.
        """
        allowed = [spelling for status in from_statuses for spelling in status.spellings()]
        try:
            response = await self.repository.update(
                _serialize({"status": to_status, **values}), count=CountMethod.exact
            ).eq(
                "code", code
            ).in_(
                "status", allowed
            ).execute()
        except APIError as e:
            logger.error("Failed to update license", error=str(e), code=code, to_status=str(to_status))
            capture_exception(e)
            raise e
        if not response.data:
            return None
        return License(**response.data[0])

    async def redeem(
            self,
            code: str,
            user_id: str,
            from_statuses: Iterable[LicenseStatus],
            redeemed_at: datetime,
    ) -> Optional[Tuple[License, bool]]:
        """
        Assign the license to ``user_id`` and insert its redemption record in one
        transaction (``redeem_license`` in sql/schema.sql). Returns the license and
        whether the record was new, or ``None`` if the license was no longer redeemable.
        """
        allowed = [spelling for status in from_statuses for spelling in status.spellings()]
        try:
            response = await self.db.rpc(
                "redeem_license",
                {
                    "p_code": code,
                    "p_user_id": str(user_id),
                    "p_statuses": allowed,
                    "p_redeemed_at": redeemed_at.isoformat(),
                },
            ).execute()
        except APIError as e:
            logger.error("Failed to redeem license", error=str(e), code=code, user_id=user_id)
            capture_exception(e)
            raise e
        if not response.data:
            return None
        row = response.data[0]
        return License(**row["license"]), bool(row["recorded"])

    async def issue(
            self,
            code: str,
            status: LicenseStatus,
            user_id: Optional[str] = None,
            redeemed_at: Optional[datetime] = None,
            product_id: Optional[str] = None,
            metadata: Optional[Dict[str, Any]] = None,
    ) -> License:
        """Insert a license, and its redemption record when it has an owner, in one transaction."""
        try:
            response = await self.db.rpc(
                "issue_license",
                {
                    "p_code": code,
                    "p_status": str(status),
                    "p_user_id": str(user_id) if user_id else None,
                    "p_redeemed_at": redeemed_at.isoformat() if redeemed_at else None,
                    "p_product_id": product_id,
                    "p_metadata": metadata or {},
                },
            ).execute()
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                logger.warning("License insert hit a unique constraint", error=e.message)
                raise LicenseConflictError(e.message)
            logger.error("Failed to issue license", error=str(e), code=code)
            capture_exception(e)
            raise e
        return License(**response.data[0])
