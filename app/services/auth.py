"""Chat participant accounts: registration and sign-in."""

from dataclasses import dataclass
from datetime import datetime

import bcrypt
from sqlalchemy.orm import Session

from app.models.user import User


@dataclass
class AuthResult:
    """Outcome of a registration or sign-in attempt."""

    success: bool
    error: str | None = None
    user_id: int | None = None
    email: str | None = None
    display_name: str | None = None

    @classmethod
    def for_user(cls, user: User) -> "AuthResult":
        return cls(success=True, user_id=user.id, email=user.email, display_name=user.display_name)


def _hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


class AuthService:
    """Creates participants and checks their credentials."""

    def register(self, db: Session, email: str, password: str, display_name: str) -> AuthResult:
        if not email.strip() or not password:
            return AuthResult(success=False, error="Email and password are required")

        if db.query(User).filter(User.email.ilike(email.strip())).first():
            return AuthResult(success=False, error="Email already registered")

        user = User(
            email=email.lower().strip(),
            password_hash=_hash_password(password),
            display_name=display_name.strip() or email.split("@")[0],
            is_active=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return AuthResult.for_user(user)

    def authenticate(self, db: Session, email: str, password: str) -> AuthResult:
        """Check email/password and stamp the login time."""
        user = db.query(User).filter(User.email.ilike(email.strip())).first()
        if not user or not bcrypt.checkpw(password.encode("utf-8"), user.password_hash.encode("utf-8")):
            return AuthResult(success=False, error="Invalid email or password")
        if not user.is_active:
            return AuthResult(success=False, error="Account is deactivated")

        user.last_login_at = datetime.utcnow()
        db.commit()
        return AuthResult.for_user(user)


_auth_service: AuthService | None = None


def get_auth_service() -> AuthService:
    """Get singleton auth service instance."""
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService()
    return _auth_service
