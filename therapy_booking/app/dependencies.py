# dependencies.py
import json
from functools import partial

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from redis import Redis
from enum import Enum

from .config import DATABASE_URL, REDIS_URL

# JSON columns keep non-ASCII text as-is so list filters can match it
dump_json = partial(json.dumps, ensure_ascii=False)

if DATABASE_URL.startswith("sqlite"):
    engine = create_engine(DATABASE_URL, connect_args={"check_same_thread": False}, json_serializer=dump_json)
else:
    engine = create_engine(DATABASE_URL, pool_pre_ping=True, json_serializer=dump_json)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

redis_client = Redis.from_url(REDIS_URL, decode_responses=True)


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    DOCTOR = "DOCTOR"
    CLIENT = "CLIENT"


class Language(str, Enum):
    FRENCH = "FRENCH"
    ARABIC = "ARABIC"


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    DECLINED = "DECLINED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"


class SessionType(str, Enum):
    VIDEO = "video"
    CHAT = "chat"
    IN_PERSON = "in-person"


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_redis_client():
    return redis_client
