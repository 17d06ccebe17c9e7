from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Text,
    Time,
    false,
    text,
    true,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()
metadata = Base.metadata


# Booking statuses
HOLD = "HOLD"
BOOKED = "BOOKED"
CHECKED_IN = "CHECKED_IN"
IN_SERVICE = "IN_SERVICE"
COMPLETED = "COMPLETED"
CANCELLED = "CANCELLED"
NO_SHOW = "NO_SHOW"
EXPIRED = "EXPIRED"

BOOKING_ACTIVE_STATUSES = (HOLD, BOOKED, CHECKED_IN, IN_SERVICE)
BOOKING_TERMINAL_STATUSES = (COMPLETED, CANCELLED, NO_SHOW, EXPIRED)

# Waitlist statuses (CANCELLED / EXPIRED shared with bookings)
WAITING = "WAITING"
PROMOTED = "PROMOTED"
CONFIRMED = "CONFIRMED"

WAITLIST_ACTIVE_STATUSES = (WAITING, PROMOTED)


class AvailabilityRule(Base):
    __tablename__ = 'availability_rules'
    __table_args__ = (
        CheckConstraint('day_of_week BETWEEN 0 AND 6', name='ck_rule_day_of_week'),
    )

    day_of_week = Column(Integer, primary_key=True, autoincrement=False)  # 0 = Monday
    is_day_off = Column(Boolean, nullable=False, server_default=false())
    work_start = Column(Time, nullable=False)
    work_end = Column(Time, nullable=False)
    break_start = Column(Time)
    break_end = Column(Time)


class BlockedInterval(Base):
    __tablename__ = 'blocked_intervals'

    id = Column(Integer, primary_key=True)
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)
    reason = Column(Text)
    created_at = Column(DateTime, nullable=False)


class Service(Base):
    __tablename__ = 'services'

    id = Column(Integer, primary_key=True)
    name = Column(Text, nullable=False)
    price_amount = Column(Float, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    is_active = Column(Boolean, nullable=False, server_default=true())


class Booking(Base):
    __tablename__ = 'bookings'
    __table_args__ = (
        Index('ix_bookings_status_start', 'status', 'start_time'),
    )

    id = Column(Integer, primary_key=True)
    customer_name = Column(Text, nullable=False)
    customer_phone = Column(Text, nullable=False)
    customer_token = Column(Text, nullable=False)
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)
    status = Column(Text, nullable=False, server_default=text(f"'{BOOKED}'"))
    created_at = Column(DateTime, nullable=False)
    grace_expiry_time = Column(DateTime)  # HOLD only

    services = relationship(
        'BookingService',
        back_populates='booking',
        order_by='BookingService.sort_order',
        cascade='all, delete-orphan',
    )


class BookingService(Base):
    """Snapshot of a selected service at booking time."""

    __tablename__ = 'booking_services'

    id = Column(Integer, primary_key=True)
    booking_id = Column(ForeignKey('bookings.id', ondelete='CASCADE'), nullable=False, index=True)
    service_name = Column(Text, nullable=False)
    price_amount = Column(Float, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    sort_order = Column(Integer, nullable=False)

    booking = relationship('Booking', back_populates='services')


class WaitlistEntry(Base):
    __tablename__ = 'waitlist'
    __table_args__ = (
        Index('ix_waitlist_slot_created', 'slot_start_time', 'created_at'),
        # At most one live offer per slot
        Index(
            'uq_waitlist_one_promoted_per_slot',
            'slot_start_time',
            unique=True,
            sqlite_where=text(f"status = '{PROMOTED}'"),
            postgresql_where=text(f"status = '{PROMOTED}'"),
        ),
    )

    id = Column(Integer, primary_key=True)
    slot_start_time = Column(DateTime, nullable=False)
    customer_name = Column(Text, nullable=False)
    customer_phone = Column(Text, nullable=False)
    customer_token = Column(Text, nullable=False)
    total_duration_minutes = Column(Integer, nullable=False)
    total_price_amount = Column(Float, nullable=False)
    status = Column(Text, nullable=False, server_default=text(f"'{WAITING}'"))
    created_at = Column(DateTime, nullable=False)
    promoted_at = Column(DateTime)
    promotion_expires_at = Column(DateTime)
    booking_id = Column(ForeignKey('bookings.id', ondelete='SET NULL'))

    booking = relationship('Booking')
    services = relationship(
        'WaitlistService',
        back_populates='entry',
        order_by='WaitlistService.sort_order',
        cascade='all, delete-orphan',
    )


class WaitlistService(Base):
    """Services the queued customer asked for; copied onto the HOLD booking."""

    __tablename__ = 'waitlist_services'

    id = Column(Integer, primary_key=True)
    entry_id = Column(ForeignKey('waitlist.id', ondelete='CASCADE'), nullable=False, index=True)
    service_name = Column(Text, nullable=False)
    price_amount = Column(Float, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    sort_order = Column(Integer, nullable=False)

    entry = relationship('WaitlistEntry', back_populates='services')
