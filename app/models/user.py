"""User model - account data plus subscription and swipe counters."""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey, Integer, Numeric
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.utils.time import as_utc


class User(Base):
    """
    Attendee, host or dater.
    Swipe counters live here; discovery settings live on UserPreference.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    email: Mapped[Optional[str]] = mapped_column(
        String(255),
        unique=True,
        nullable=True,
        index=True,
    )

    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    # Host earnings credited on confirmed bookings
    wallet_balance: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        default=Decimal("0"),
        nullable=False,
    )

    # === Subscription ===

    active_package_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("subscription_packages.id", ondelete="SET NULL"),
        nullable=True,
    )

    subscription_end_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # === Swipe quota ===

    # Subscription swipes left today, reset to the package limit once per day
    daily_swipe_remaining: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    free_swipes_remaining: Mapped[int] = mapped_column(
        Integer,
        default=3,
        nullable=False,
    )

    last_swipe_reset: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<User {self.id} email={self.email}>"

    def has_active_subscription(self, now: Optional[datetime] = None) -> bool:
        """True while subscription_end_date lies in the future."""
        end = as_utc(self.subscription_end_date)
        if end is None:
            return False
        return end > (now or datetime.now(timezone.utc))

