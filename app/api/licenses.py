from fastapi import APIRouter, BackgroundTasks, Depends

from app.depends.services import get_accounts_service, get_email_service, get_state_machine
from app.models.users import RedeemDTO, ValidateLicenseDTO
from app.services.accounts_service import AccountsService
from app.services.email_service import EmailService
from app.services.licenses.state_machine import LicenseStateMachine

router = APIRouter(tags=["licenses"])


@router.post("/redeem")
@router.post("/activate-license")
async def redeem_license(
        data: RedeemDTO,
        background_tasks: BackgroundTasks,
        accounts: AccountsService = Depends(get_accounts_service),
        state_machine: LicenseStateMachine = Depends(get_state_machine),
        email_service: EmailService = Depends(get_email_service),
):
    # no placeholder account for a code that cannot be redeemed
    await state_machine.check_redeemable(data.code)
    user = await accounts.resolve_user(email=data.email, user_id=str(data.user_id) if data.user_id else None)
    result = await state_machine.redeem(data.code, str(user.id))
    if not result.replayed:
        background_tasks.add_task(email_service.notify_license, user.email, result.license.code)
    return result.to_response()


@router.post("/validate-license")
async def validate_license(data: ValidateLicenseDTO, accounts: AccountsService = Depends(get_accounts_service)):
    return {"ok": True, "valid": await accounts.validate_license(data.license_key, data.email)}
