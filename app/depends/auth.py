import hmac
from typing import Annotated, Optional

import structlog
from fastapi import Header

from app.exceptions import UnauthorizedError
from app.settings import settings

logger = structlog.get_logger(__name__)


async def admin_dependency(x_admin_key: Annotated[Optional[str], Header()] = None):
    if not settings.admin_key:
        logger.warning("Admin endpoint called but no admin key is configured")
        raise UnauthorizedError("Admin access is disabled")
    if not x_admin_key or not hmac.compare_digest(x_admin_key, settings.admin_key):
        logger.warning("Invalid admin key")
        raise UnauthorizedError("Invalid admin key")
