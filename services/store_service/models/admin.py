"""Back office accounts and store-wide settings."""

import uuid
from datetime import datetime, timedelta
from typing import Any, Optional

from libs.common.datetime_utils import ensure_utc, utc_now
from libs.db.base import Base, JSONType
from services.store_service.models.enums import AdminRole, enum_values
from sqlalchemy import Boolean, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

MAX_LOGIN_ATTEMPTS = 5
LOCK_DURATION = timedelta(hours=2)


class StoreAdmin(Base):
    """Back office user with attempt-based lockout."""

    __tablename__ = "store_admins"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )  # stored lowercase
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[AdminRole] = mapped_column(
        SAEnum(
            AdminRole,
            values_callable=enum_values,
            name="store_admin_role_enum",
        ),
        default=AdminRole.ADMIN,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    last_login: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    login_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    lock_until: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    def is_locked(self, now: Optional[datetime] = None) -> bool:
        now = now or utc_now()
        return self.lock_until is not None and ensure_utc(self.lock_until) > now

    def register_failed_login(self, now: Optional[datetime] = None) -> None:
        """Count a failed attempt, locking the account on the fifth in a row.

        An expired lock starts a fresh count at 1.
        """
        now = now or utc_now()
        if self.lock_until is not None and ensure_utc(self.lock_until) <= now:
            self.login_attempts = 1
            self.lock_until = None
            return

        self.login_attempts = (self.login_attempts or 0) + 1
        if self.login_attempts >= MAX_LOGIN_ATTEMPTS and not self.is_locked(now):
            self.lock_until = now + LOCK_DURATION

    def register_successful_login(self, now: Optional[datetime] = None) -> None:
        self.login_attempts = 0
        self.lock_until = None
        self.last_login = now or utc_now()

    def __repr__(self):
        return f"<StoreAdmin {self.email}>"


class StoreSetting(Base):
    """Flat key/value store for store-wide scalars."""

    __tablename__ = "store_settings"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[Any] = mapped_column(JSONType, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    def __repr__(self):
        return f"<StoreSetting {self.key}={self.value!r}>"
