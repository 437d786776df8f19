from supabase import AsyncClient


class RedemptionsRepository:
    """Read side of ``redemptions``; rows are written by the ``redeem_license``/``issue_license`` functions."""
    table_name = "redemptions"

    def __init__(self, db_client: AsyncClient):
        self.db = db_client
        self.repository = self.db.table(self.table_name)

    async def exists_for_user(self, user_id: str) -> bool:
        response = await self.repository.select("license_id").eq("user_id", str(user_id)).limit(1).execute()
        return bool(response.data)

    async def exists(self, user_id: str, license_id: int | str) -> bool:
        response = await self.repository.select("id").eq(
            "user_id", str(user_id)
        ).eq(
            "license_id", license_id
        ).limit(1).execute()
        return bool(response.data)
