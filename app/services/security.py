from datetime import datetime, timedelta, timezone

from jose import jwt
from passlib.context import CryptContext

from app.models.users import User


class PasswordHasher:
    def __init__(self, rounds: int = 10):
        self._context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, password: str, password_hash: str | None) -> bool:
        if not password_hash:
            return False
        try:
            return self._context.verify(password, password_hash)
        except ValueError:
            # malformed hash stored by an older revision
            return False


class TokenService:
    def __init__(self, secret: str, algorithm: str = "HS256", expires_days: int = 7):
        self.secret = secret
        self.algorithm = algorithm
        self.expires_days = expires_days

    def create_token(self, user: User) -> str:
        payload = {
            "sub": str(user.id),
            "email": user.email,
            "exp": datetime.now(timezone.utc) + timedelta(days=self.expires_days),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)
