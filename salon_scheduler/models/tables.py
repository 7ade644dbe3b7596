from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Index, Integer, Text, text
from sqlalchemy.orm import declarative_base

Base = declarative_base()
metadata = Base.metadata


def _uuid() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    # Naive UTC, matching the timezone-less DateTime columns
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Workers(Base):
    __tablename__ = 'workers'

    id = Column(Text, primary_key=True, default=_uuid)
    merchant_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    specialty = Column(Text)
    is_active = Column(Boolean, nullable=False, default=True, server_default=text('1'))
    created_at = Column(DateTime, nullable=False, default=_utcnow)


class Slots(Base):
    __tablename__ = 'slots'
    __table_args__ = (
        Index('ix_slots_merchant_date_start', 'merchant_id', 'date', 'start_time'),
        Index('ix_slots_worker_date', 'worker_id', 'date'),
    )

    id = Column(Text, primary_key=True, default=_uuid)
    merchant_id = Column(Text, nullable=False)
    date = Column(Text, nullable=False)
    start_time = Column(Text, nullable=False)
    end_time = Column(Text, nullable=False)
    is_booked = Column(Boolean, nullable=False, default=False, server_default=text('0'))
    service_duration = Column(Integer, nullable=False)
    service_name = Column(Text)
    service_price = Column(Float)
    worker_id = Column(ForeignKey('workers.id', ondelete='SET NULL'))
    created_at = Column(DateTime, nullable=False, default=_utcnow)
    updated_at = Column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)


class WorkerUnavailability(Base):
    __tablename__ = 'worker_unavailability'
    __table_args__ = (
        Index('ix_worker_unavailability_worker_date', 'worker_id', 'date'),
    )

    id = Column(Text, primary_key=True, default=_uuid)
    worker_id = Column(ForeignKey('workers.id', ondelete='CASCADE'), nullable=False)
    date = Column(Text, nullable=False)
    start_time = Column(Text, nullable=False)
    end_time = Column(Text, nullable=False)
    reason = Column(Text)


class Bookings(Base):
    __tablename__ = 'bookings'

    id = Column(Text, primary_key=True, default=_uuid)
    slot_id = Column(ForeignKey('slots.id', ondelete='SET NULL'), index=True)
    user_id = Column(Text)
    merchant_id = Column(Text, nullable=False)
    worker_id = Column(Text)
    booking_date = Column(Text, nullable=False)
    time_slot = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default='pending', server_default=text("'pending'"))
    service_name = Column(Text)
    service_price = Column(Float)
    service_duration = Column(Integer)
    coins_used = Column(Integer, nullable=False, default=0, server_default=text('0'))
    customer_email = Column(Text)
    created_at = Column(DateTime, nullable=False, default=_utcnow)
    updated_at = Column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)


class MerchantSettings(Base):
    __tablename__ = 'merchant_settings'

    merchant_id = Column(Text, primary_key=True)
    working_hours_start = Column(Text, nullable=False, server_default=text("'09:00'"))
    working_hours_end = Column(Text, nullable=False, server_default=text("'17:00'"))


class Services(Base):
    __tablename__ = 'services'

    id = Column(Text, primary_key=True, default=_uuid)
    merchant_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    duration = Column(Integer, nullable=False)
    price = Column(Float)
    created_at = Column(DateTime, nullable=False, default=_utcnow)


class Profiles(Base):
    __tablename__ = 'profiles'

    id = Column(Text, primary_key=True, default=_uuid)
    coins = Column(Integer, nullable=False, default=0, server_default=text('0'))
