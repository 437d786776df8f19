from datetime import datetime, timezone
from typing import Callable, List, Optional

import sentry_sdk
import structlog

from app.exceptions import AlreadyRedeemedError, LicenseNotAvailableError, LicenseNotFoundError, UpstreamFailure
from app.models.license import License, LicenseStatus, REDEEMABLE_STATUSES, RedemptionResult, can_transition
from app.repository.licenses_repository import LicenseConflictError, LicensesRepository
from app.services.licenses.codes import generate_license_code

logger = structlog.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LicenseStateMachine:
    """
    Lifecycle of a license: ``available`` -> (``reserved``) -> ``redeemed``.

    Every status change is a single conditional write against the store, so two
    callers racing on one code can never both observe a redeemable license and
    both take it. Redemption writes the owner and the redemption record in the
    same transaction. ``redeemed`` is terminal.
    """
    max_code_attempts = 5

    def __init__(
            self,
            licenses: LicensesRepository,
            code_factory: Callable[[], str] = generate_license_code,
            clock: Callable[[], datetime] = utcnow,
    ):
        self._licenses = licenses
        self._code_factory = code_factory
        self._clock = clock

    async def get_license(self, code: str) -> License:
        license = await self._licenses.get_by_code(code.strip())
        if license is None:
            logger.info("License not found", code=code)
            raise LicenseNotFoundError()
        return license

    async def check_redeemable(self, code: str) -> License:
        """The license for ``code`` if it can still be redeemed by anybody."""
        license = await self.get_license(code)
        if not license.is_redeemable:
            logger.info("License already redeemed", code=license.code, owner_id=license.user_id)
            raise AlreadyRedeemedError()
        return license

    async def redeem(self, code: str, user_id: str) -> RedemptionResult:
        code = code.strip()
        await self.check_redeemable(code)

        redeemed = await self._licenses.redeem(code, str(user_id), REDEEMABLE_STATUSES, self._clock())
        if redeemed is None:
            # another caller won the conditional write
            logger.info("License redeemed concurrently", code=code, user_id=user_id)
            raise AlreadyRedeemedError()

        license, recorded = redeemed
        logger.info("License redeemed", code=code, user_id=user_id, license_id=license.id)
        return RedemptionResult(license=license, user_id=str(user_id), replayed=not recorded)

    async def reserve(self, code: str) -> License:
        code = code.strip()
        license = await self.get_license(code)
        if not can_transition(license.status, LicenseStatus.RESERVED):
            raise LicenseNotAvailableError()
        updated = await self._licenses.transition(code, (LicenseStatus.AVAILABLE,), LicenseStatus.RESERVED)
        if updated is None:
            raise LicenseNotAvailableError()
        logger.info("License reserved", code=code)
        return updated

    async def issue(
            self,
            user_id: Optional[str],
            session_id: str,
            customer_email: Optional[str] = None,
            product_id: Optional[str] = None,
    ) -> RedemptionResult:
        """
        Mint a license for a completed checkout session.

        With an owner the license is born ``redeemed``; without one it is ``reserved``
        until somebody redeems its code. A second call for the same session returns
        the license minted by the first one, flagged as replayed.
        """
        now = self._clock()
        status = LicenseStatus.REDEEMED if user_id else LicenseStatus.RESERVED
        metadata = {"stripe_session": session_id, "customer_email": customer_email}
        license = None
        for attempt in range(self.max_code_attempts):
            try:
                license = await self._licenses.issue(
                    self._code_factory(),
                    status,
                    user_id=str(user_id) if user_id else None,
                    redeemed_at=now if user_id else None,
                    product_id=product_id,
                    metadata=metadata,
                )
                break
            except LicenseConflictError:
                existing = await self._licenses.get_by_session_id(session_id)
                if existing is not None:
                    logger.info("License already issued for session", session_id=session_id, code=existing.code)
                    return RedemptionResult(license=existing, user_id=existing.user_id, replayed=True)
                logger.warning("License code collision", attempt=attempt, session_id=session_id)
        if license is None:
            sentry_sdk.set_context("license_issue", {"session_id": session_id})
            sentry_sdk.capture_message("Could not allocate a unique license code")
            raise UpstreamFailure("Could not allocate a unique license code")

        logger.info("License issued", code=license.code, user_id=user_id, session_id=session_id, status=str(status))
        return RedemptionResult(license=license, user_id=str(user_id) if user_id else None)

    async def provision(self, count: int, product_id: Optional[str] = None) -> List[License]:
        for attempt in range(self.max_code_attempts):
            rows = [
                {"code": self._code_factory(), "status": LicenseStatus.AVAILABLE, "product_id": product_id}
                for _ in range(count)
            ]
            try:
                licenses = await self._licenses.create_many(rows)
                logger.info("Licenses provisioned", count=len(licenses), product_id=product_id)
                return licenses
            except LicenseConflictError:
                logger.warning("License code collision while provisioning", attempt=attempt)
        raise UpstreamFailure("Could not allocate unique license codes")
