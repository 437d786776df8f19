from app.api.admin import router as admin_router
from app.api.checkout import router as checkout_router
from app.api.health import router as health_router
from app.api.licenses import router as licenses_router
from app.api.users import router as users_router
from app.api.webhooks import router as webhooks_router

__all__ = [
    "admin_router",
    "checkout_router",
    "health_router",
    "licenses_router",
    "users_router",
    "webhooks_router",
]
