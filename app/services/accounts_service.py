from typing import Any, Dict, Optional

import structlog

from app.exceptions import InvalidCredentialsError, LicenseServiceError, UserNotFoundError, ValidationError
from app.models.users import RegisterDTO, LoginDTO, User
from app.repository.licenses_repository import LicensesRepository
from app.repository.redemptions_repository import RedemptionsRepository
from app.repository.users_repository import UsersRepository
from app.services.licenses.state_machine import LicenseStateMachine
from app.services.security import PasswordHasher, TokenService

logger = structlog.getLogger(__name__)


class AccountsService:
    def __init__(
            self,
            users: UsersRepository,
            licenses: LicensesRepository,
            redemptions: RedemptionsRepository,
            state_machine: LicenseStateMachine,
            hasher: PasswordHasher,
            tokens: TokenService,
            min_password_length: int = 8,
    ):
        self._users = users
        self._licenses = licenses
        self._redemptions = redemptions
        self._state_machine = state_machine
        self._hasher = hasher
        self._tokens = tokens
        self.min_password_length = min_password_length

    async def register(self, data: RegisterDTO) -> Dict[str, Any]:
        if len(data.password) < self.min_password_length:
            raise ValidationError(f"Password must be at least {self.min_password_length} characters")

        # the unique email constraint rejects placeholder rows too
        user = await self._users.create_user(data.email, self._hasher.hash(data.password), name=data.name)
        logger.info("User registered", email=user.email, user_id=str(user.id))

        license_attached = False
        license_error: Optional[str] = None
        if data.license_code:
            try:
                await self._state_machine.redeem(data.license_code, str(user.id))
                license_attached = True
            except LicenseServiceError as e:
                # the account stays; the license is simply not attached
                logger.warning("License not attached on registration", email=user.email,
                               code=data.license_code, error=e.code)
                license_error = e.code

        response = {
            "ok": True,
            "token": self._tokens.create_token(user),
            "user": user.public(),
            "hasLicense": await self._redemptions.exists_for_user(str(user.id)),
            "licenseAttached": license_attached,
        }
        if license_error:
            response["licenseError"] = license_error
        return response

    async def login(self, data: LoginDTO) -> Dict[str, Any]:
        user = await self._users.get_user_by_email(data.email)
        if user is None:
            logger.info("Login for unknown email", email=data.email)
            raise UserNotFoundError()
        if not self._hasher.verify(data.password, user.password_hash):
            logger.info("Invalid credentials", email=data.email)
            raise InvalidCredentialsError()
        return {
            "ok": True,
            "token": self._tokens.create_token(user),
            "user": user.public(),
            "hasLicense": await self._redemptions.exists_for_user(str(user.id)),
        }

    async def has_license(self, email: str) -> bool:
        user = await self._users.get_user_by_email(email)
        if user is None:
            return False
        return await self._redemptions.exists_for_user(str(user.id))

    async def resolve_user(self, email: Optional[str] = None, user_id: Optional[str] = None) -> User:
        """User for a redemption request; an unknown email gets a placeholder account."""
        if user_id:
            return await self._users.get_user(user_id)
        user, created = await self._users.get_or_create_placeholder(email)
        if created:
            logger.info("Placeholder account created for redemption", email=email, user_id=str(user.id))
        return user

    async def validate_license(self, code: str, email: Optional[str] = None) -> bool:
        """Whether ``code`` has been redeemed, by the account for ``email`` when one is given."""
        license = await self._licenses.get_by_code(code.strip())
        if license is None or license.user_id is None:
            return False
        if email:
            user = await self._users.get_user_by_email(email)
            if user is None or str(user.id) != license.user_id:
                return False
        return await self._redemptions.exists(license.user_id, license.id)
