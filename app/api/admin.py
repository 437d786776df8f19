from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import Field

from app.depends.auth import admin_dependency
from app.depends.services import get_state_machine
from app.models.users import RequestDTO
from app.services.licenses.state_machine import LicenseStateMachine

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(admin_dependency)])


class ProvisionDTO(RequestDTO):
    count: int = Field(default=1, ge=1, le=500)
    product_id: Optional[str] = None


def _license_view(license):
    return {"code": license.code, "status": str(license.status), "productId": license.product_id}


@router.post("/licenses")
async def provision_licenses(data: ProvisionDTO, state_machine: LicenseStateMachine = Depends(get_state_machine)):
    licenses = await state_machine.provision(data.count, data.product_id)
    return {"ok": True, "licenses": [_license_view(license) for license in licenses]}


@router.post("/licenses/{code}/reserve")
async def reserve_license(code: str, state_machine: LicenseStateMachine = Depends(get_state_machine)):
    license = await state_machine.reserve(code)
    return {"ok": True, "license": _license_view(license)}
