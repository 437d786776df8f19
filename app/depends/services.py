from fastapi import Depends, Request
from supabase import AsyncClient

from app.repository.licenses_repository import LicensesRepository
from app.repository.redemptions_repository import RedemptionsRepository
from app.repository.users_repository import UsersRepository
from app.services.accounts_service import AccountsService
from app.services.email_service import EmailService
from app.services.licenses.state_machine import LicenseStateMachine
from app.services.security import PasswordHasher, TokenService
from app.services.stripe_service import StripeService
from app.services.webhooks.signature import StripeSignatureVerifier
from app.services.webhooks.stripe import StripeWebhookService
from app.settings import settings


async def get_db(request: Request) -> AsyncClient:
    return await request.app.state.db_connection.connect()


def get_users_repository(db: AsyncClient = Depends(get_db)) -> UsersRepository:
    return UsersRepository(db)


def get_licenses_repository(db: AsyncClient = Depends(get_db)) -> LicensesRepository:
    return LicensesRepository(db)


def get_redemptions_repository(db: AsyncClient = Depends(get_db)) -> RedemptionsRepository:
    return RedemptionsRepository(db)


def get_state_machine(licenses: LicensesRepository = Depends(get_licenses_repository)) -> LicenseStateMachine:
    return LicenseStateMachine(licenses)


def get_password_hasher() -> PasswordHasher:
    return PasswordHasher(rounds=settings.bcrypt_rounds)


def get_token_service() -> TokenService:
    return TokenService(settings.jwt_secret, settings.jwt_algorithm, settings.jwt_expires_days)


def get_accounts_service(
        users: UsersRepository = Depends(get_users_repository),
        licenses: LicensesRepository = Depends(get_licenses_repository),
        redemptions: RedemptionsRepository = Depends(get_redemptions_repository),
        state_machine: LicenseStateMachine = Depends(get_state_machine),
        hasher: PasswordHasher = Depends(get_password_hasher),
        tokens: TokenService = Depends(get_token_service),
) -> AccountsService:
    return AccountsService(
        users, licenses, redemptions, state_machine, hasher, tokens,
        min_password_length=settings.min_password_length,
    )


def get_email_service() -> EmailService:
    return EmailService(settings.email_config, timeout=settings.http_timeout)


def get_stripe_service() -> StripeService:
    return StripeService(settings.stripe_config, timeout=settings.http_timeout)


def get_signature_verifier() -> StripeSignatureVerifier | None:
    if not settings.stripe_config.webhook_secret:
        return None
    return StripeSignatureVerifier(
        settings.stripe_config.webhook_secret,
        tolerance=settings.stripe_config.signature_tolerance,
    )


def get_webhook_service(
        verifier: StripeSignatureVerifier | None = Depends(get_signature_verifier),
        state_machine: LicenseStateMachine = Depends(get_state_machine),
        users: UsersRepository = Depends(get_users_repository),
        licenses: LicensesRepository = Depends(get_licenses_repository),
) -> StripeWebhookService | None:
    if verifier is None:
        return None
    return StripeWebhookService(verifier, state_machine, users, licenses)
