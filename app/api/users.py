from typing import Annotated

from fastapi import APIRouter, Depends, Query
from pydantic import EmailStr

from app.depends.services import get_accounts_service
from app.models.users import LoginDTO, RegisterDTO, normalize_email
from app.services.accounts_service import AccountsService

router = APIRouter(tags=["users"])


@router.post("/register")
async def register(data: RegisterDTO, accounts: AccountsService = Depends(get_accounts_service)):
    return await accounts.register(data)


@router.post("/login")
async def login(data: LoginDTO, accounts: AccountsService = Depends(get_accounts_service)):
    return await accounts.login(data)


@router.get("/has-license")
async def has_license(
        email: Annotated[EmailStr, Query()],
        accounts: AccountsService = Depends(get_accounts_service),
):
    return {"ok": True, "hasLicense": await accounts.has_license(normalize_email(email))}
