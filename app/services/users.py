"""
User Service
Registration, password login and the prepaid credit balance.

Balances are integers in cents; amounts coming from clients are converted
once at the edge with ``to_cents``.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import AuthenticationError, NotFoundError, ValidationError
from app.core.security import get_password_hash, verify_password
from app.models.user import User

logger = logging.getLogger(__name__)


def to_cents(amount: Union[Decimal, int, float, str]) -> int:
    """Convert a major-unit amount to cents, rounding half up."""
    cents = (Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(cents)


def format_cents(cents: int) -> str:
    """``1250`` -> ``"12.50"``"""
    sign = "-" if cents < 0 else ""
    whole, frac = divmod(abs(cents), 100)
    return f"{sign}{whole}.{frac:02d}"


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserService:

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def require(self, user_id: str) -> User:
        user = self.get(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == normalize_email(email)).first()

    def register(self, email: str, password: str, name: Optional[str] = None) -> User:
        """Create an account with a zero balance."""
        email = normalize_email(email)
        if self.get_by_email(email):
            raise ValidationError("User already exists")

        user = User(
            email=email,
            password_hash=get_password_hash(password),
            name=name,
            balance=0,
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            # Concurrent registration with the same email
            self.db.rollback()
            raise ValidationError("User already exists")
        self.db.refresh(user)
        logger.info(f"[Users] Registered user {user.id}")
        return user

    def authenticate(self, email: str, password: str) -> User:
        user = self.get_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            logger.warning("[Users] Failed login attempt")
            raise AuthenticationError("Invalid email or password")
        return user

    def add_credit(self, user_id: str, cents: int, commit: bool = True) -> int:
        """
        Atomically add ``cents`` to a balance.

        The increment happens in SQL so concurrent credits never overwrite
        each other. Returns the new balance.
        """
        result = self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(balance=User.balance + cents)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.db.rollback()
            raise NotFoundError("User not found")
        if commit:
            self.db.commit()

        user = self.require(user_id)
        self.db.refresh(user)
        logger.info(f"[Users] Credited {cents} cents to user {user_id}, balance {user.balance}")
        return user.balance
