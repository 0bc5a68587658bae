# foodmandu/models/account.py
# Учётная запись: контакты, хеш пароля, роль, флаги и артефакты верификации.
# Ресторанный профиль хранится отдельной таблицей один-к-одному.
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, ForeignKey, JSON, Text
from sqlalchemy.orm import relationship
import enum

from foodmandu.core.clock import utcnow
from foodmandu.db.base import Base


class RoleEnum(str, enum.Enum):
    customer = "customer"
    restaurant = "restaurant"
    admin = "admin"


class Account(Base):
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    phone_number = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    role = Column(Enum(RoleEnum), default=RoleEnum.customer, nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)

    email_verified = Column(Boolean, default=False, nullable=False)
    phone_verified = Column(Boolean, default=False, nullable=False)

    # ссылка из письма, срок не ограничен
    verification_token = Column(String, nullable=True, index=True)
    email_otp = Column(String(6), nullable=True)
    email_otp_expires = Column(DateTime, nullable=True)
    phone_otp = Column(String(6), nullable=True)
    phone_otp_expires = Column(DateTime, nullable=True)

    reset_password_token = Column(String, nullable=True, index=True)
    reset_password_expires = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    restaurant_profile = relationship(
        "RestaurantProfile",
        back_populates="account",
        uselist=False,
        cascade="all, delete-orphan",
    )

    @property
    def is_verified(self) -> bool:
        return bool(self.email_verified or self.phone_verified)

    @property
    def is_approved(self) -> bool:
        """Рестораны доступны после одобрения админом, остальные роли сразу."""
        if self.role != RoleEnum.restaurant:
            return True
        return bool(self.restaurant_profile and self.restaurant_profile.is_approved)

    def __repr__(self) -> str:
        return f"<Account id={self.id} email={self.email!r} role={self.role}>"


class RestaurantProfile(Base):
    __tablename__ = "restaurant_profiles"

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), unique=True, nullable=False)
    restaurant_name = Column(String, nullable=False)
    cuisine = Column(JSON, default=list)
    address = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    phone = Column(String, nullable=True)
    is_approved = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    account = relationship("Account", back_populates="restaurant_profile")
