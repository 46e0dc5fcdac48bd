# models.py
from sqlalchemy import Column, Integer, String, DateTime, Date, ForeignKey, Boolean, Float, Text, JSON, Index
from sqlalchemy.orm import declarative_base, relationship
from datetime import datetime, timezone

Base = declarative_base()


def utcnow():
    """Naive UTC timestamp, the form every DateTime column is stored in."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = 'users'
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, nullable=True, unique=True)
    phone = Column(String, nullable=True, unique=True)
    hashed_password = Column(String, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    role = Column(String, nullable=False, default='CLIENT')  # 'CLIENT', 'DOCTOR' or 'ADMIN'
    preferred_language = Column(String, nullable=False, default='FRENCH')
    is_verified = Column(Boolean, nullable=False, default=False)
    verification_token = Column(String, nullable=True, index=True)
    reset_password_token = Column(String, nullable=True, index=True)
    reset_password_expires = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    client_profile = relationship("ClientProfile", back_populates="user", uselist=False)
    doctor_profile = relationship("DoctorProfile", back_populates="user", uselist=False)

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"


class ClientProfile(Base):
    __tablename__ = 'client_profiles'
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, unique=True)
    date_of_birth = Column(Date, nullable=True)
    address = Column(String, nullable=True)
    city = Column(String, nullable=True)
    country = Column(String, nullable=True)
    photo = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="client_profile")
    bookings = relationship("Booking", back_populates="client")


class DoctorProfile(Base):
    __tablename__ = 'doctor_profiles'
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, unique=True)
    bio = Column(Text, nullable=True)
    photo = Column(String, nullable=True)
    specialization = Column(JSON, nullable=False, default=list)
    languages = Column(JSON, nullable=False, default=list)
    hourly_rate = Column(Float, nullable=False, default=0)
    available_hours = Column(JSON, nullable=False, default=dict)
    years_of_experience = Column(Integer, nullable=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    rating = Column(Float, nullable=False, default=0)
    total_reviews = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="doctor_profile")
    bookings = relationship("Booking", back_populates="doctor")
    statistics = relationship("DoctorStatistics", back_populates="doctor", uselist=False)
    reviews = relationship("Review", back_populates="doctor", order_by="Review.created_at.desc()")


class Booking(Base):
    __tablename__ = 'bookings'
    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey('client_profiles.id'), nullable=False)
    doctor_id = Column(Integer, ForeignKey('doctor_profiles.id'), nullable=False)
    session_date = Column(DateTime, nullable=False)
    session_duration = Column(Integer, nullable=False, default=60)
    session_type = Column(String, nullable=False, default='video')
    status = Column(String, nullable=False, default='PENDING')
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    client = relationship("ClientProfile", back_populates="bookings")
    doctor = relationship("DoctorProfile", back_populates="bookings")
    payment = relationship("Payment", back_populates="booking", uselist=False)
    review = relationship("Review", back_populates="booking", uselist=False)
    session_note = relationship("SessionNote", back_populates="booking", uselist=False)

    __table_args__ = (
        Index('idx_booking_client_status', 'client_id', 'status'),
        Index('idx_booking_doctor_status', 'doctor_id', 'status'),
    )


class Payment(Base):
    __tablename__ = 'payments'
    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey('bookings.id'), nullable=False, unique=True)
    client_id = Column(Integer, ForeignKey('client_profiles.id'), nullable=False)
    amount = Column(Float, nullable=False)
    currency = Column(String, nullable=False, default='MRU')
    payment_method = Column(String, nullable=False, default='manual')
    screenshot = Column(String, nullable=True)
    status = Column(String, nullable=False, default='PENDING')
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    booking = relationship("Booking", back_populates="payment")


class Message(Base):
    __tablename__ = 'messages'
    id = Column(Integer, primary_key=True, index=True)
    sender_id = Column(Integer, ForeignKey('users.id'), nullable=False)
    receiver_id = Column(Integer, ForeignKey('users.id'), nullable=False)
    booking_id = Column(Integer, ForeignKey('bookings.id'), nullable=True)
    content = Column(Text, nullable=False)
    type = Column(String, nullable=False, default='TEXT')
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    sender = relationship("User", foreign_keys=[sender_id])
    receiver = relationship("User", foreign_keys=[receiver_id])

    __table_args__ = (
        Index('idx_message_pair', 'sender_id', 'receiver_id'),
        Index('idx_message_receiver_read', 'receiver_id', 'is_read'),
    )


class Review(Base):
    __tablename__ = 'reviews'
    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey('bookings.id'), nullable=False, unique=True)
    client_id = Column(Integer, ForeignKey('client_profiles.id'), nullable=False)
    doctor_id = Column(Integer, ForeignKey('doctor_profiles.id'), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    booking = relationship("Booking", back_populates="review")
    client = relationship("ClientProfile")
    doctor = relationship("DoctorProfile", back_populates="reviews")


class SessionNote(Base):
    __tablename__ = 'session_notes'
    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey('bookings.id'), nullable=False, unique=True)
    doctor_id = Column(Integer, ForeignKey('doctor_profiles.id'), nullable=False)
    notes = Column(Text, nullable=False, default='')
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    booking = relationship("Booking", back_populates="session_note")


class DoctorStatistics(Base):
    __tablename__ = 'doctor_statistics'
    id = Column(Integer, primary_key=True, index=True)
    doctor_id = Column(Integer, ForeignKey('doctor_profiles.id'), nullable=False, unique=True)
    total_sessions = Column(Integer, nullable=False, default=0)
    completed_sessions = Column(Integer, nullable=False, default=0)
    upcoming_sessions = Column(Integer, nullable=False, default=0)
    total_earnings = Column(Float, nullable=False, default=0)
    monthly_earnings = Column(Float, nullable=False, default=0)
    last_updated = Column(DateTime, nullable=False, default=utcnow)

    doctor = relationship("DoctorProfile", back_populates="statistics")
