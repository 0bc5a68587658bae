# foodmandu/services/credentials.py
# Жизненный цикл учётной записи: регистрация, OTP по телефону и email,
# подтверждение по ссылке, вход, восстановление пароля.
import hmac
import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable, NamedTuple, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from foodmandu.core import errors
from foodmandu.core.clock import utcnow
from foodmandu.core.config import AuthConfig
from foodmandu.core.security import create_session_token, hash_password, verify_password
from foodmandu.models.account import Account, RestaurantProfile, RoleEnum
from foodmandu.services.notifications import Notifier, run_supervised

logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = "If an account with that email exists, a password reset link has been sent."


class VerificationResult(NamedTuple):
    account: Account
    token: Optional[str]
    already_verified: bool = False


class LoginResult(NamedTuple):
    account: Account
    token: str
    is_approved: bool


def generate_otp() -> str:
    """Равномерно случайный 6-значный код (100000-999999)."""
    return str(100000 + secrets.randbelow(900000))


def generate_opaque_token() -> str:
    return secrets.token_hex(32)


def phone_candidates(phone_number: str) -> list[str]:
    """Номер как есть и с переключённым ведущим '+'."""
    phone = phone_number.strip()
    alt = phone[1:] if phone.startswith("+") else f"+{phone}"
    return [phone, alt]


def codes_match(stored: str | None, submitted: str | None) -> bool:
    if not stored or not submitted:
        return False
    return hmac.compare_digest(stored.encode(), submitted.encode())


class CredentialService:
    """
    Операции над учётными записями поверх одной сессии БД.

    Args:
        db: сессия SQLAlchemy текущего запроса
        config: AuthConfig со сроками жизни и секретом JWT
        notifier: отправка SMS/email
        clock: источник текущего времени (UTC, naive)
        defer: планировщик фоновой отправки; по умолчанию синхронный
            вызов, ошибка которого только логируется
    """

    def __init__(
        self,
        db: Session,
        config: AuthConfig,
        notifier: Notifier,
        clock: Callable[[], datetime] = utcnow,
        defer: Callable | None = None,
    ):
        self.db = db
        self.config = config
        self.notifier = notifier
        self.clock = clock
        self.defer = defer or run_supervised

    # --- lookup ---

    def _find_by_email(self, email: str) -> Account | None:
        return self.db.query(Account).filter(Account.email == email).first()

    def _find_by_phone(self, phone_number: str) -> Account | None:
        for candidate in phone_candidates(phone_number):
            account = self.db.query(Account).filter(Account.phone_number == candidate).first()
            if account:
                return account
        return None

    def _consume(self, account: Account, guard, values: dict) -> bool:
        """
        Условное обновление одной записи: применяется, только если guard ещё верен.
        Возвращает False, если артефакт уже израсходован параллельным запросом.
        """
        stmt = (
            update(Account)
            .where(Account.id == account.id, guard)
            .values(**values, updated_at=self.clock())
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        if result.rowcount != 1:
            self.db.rollback()
            return False
        self.db.commit()
        self.db.refresh(account)
        return True

    def _check_otp(self, stored: str | None, expires: datetime | None, submitted: str) -> None:
        if not codes_match(stored, submitted):
            raise errors.InvalidCode()
        if expires is None or not self.clock() < expires:
            raise errors.Expired()

    def _otp_expiry(self) -> datetime:
        return self.clock() + timedelta(minutes=self.config.otp_lifetime_minutes)

    # --- signup ---

    def signup(self, payload) -> Account:
        """Создаёт неподтверждённую учётную запись. Сообщения не отправляются."""
        existing = self._find_by_email(payload.email)
        if existing:
            if not existing.is_verified:
                logger.info(f"Signup failed: user {payload.email} exists but unverified")
                raise errors.Conflict(
                    unverified=True,
                    user={
                        "name": existing.name,
                        "email": existing.email,
                        "phoneNumber": existing.phone_number,
                    },
                )
            logger.info(f"Signup failed: user {payload.email} already exists")
            raise errors.Duplicate()

        role = RoleEnum(payload.role)
        account = Account(
            name=payload.name,
            email=payload.email,
            phone_number=payload.phone_number,
            password_hash=hash_password(payload.password),
            role=role,
            is_admin=False,
            email_verified=False,
            phone_verified=False,
            verification_token=generate_opaque_token(),
        )
        if role == RoleEnum.restaurant:
            details = payload.restaurant_details
            account.restaurant_profile = RestaurantProfile(
                restaurant_name=details.restaurant_name,
                cuisine=list(details.cuisine),
                address=details.address,
                description=details.description,
                phone=details.phone,
                is_approved=False,
            )

        self.db.add(account)
        try:
            self.db.commit()
        except IntegrityError:
            # гонка двух регистраций или занятый номер телефона
            self.db.rollback()
            logger.warning(f"Signup failed: unique constraint violated for {payload.email}")
            raise errors.Duplicate()
        self.db.refresh(account)
        logger.info(f"✅ Account {account.id} registered as {role.value}")
        return account

    # --- phone OTP ---

    def send_phone_otp(self, phone_number: str) -> None:
        account = self._find_by_phone(phone_number)
        if not account:
            raise errors.NotFound()

        otp = generate_otp()
        account.phone_otp = otp
        account.phone_otp_expires = self._otp_expiry()
        self.db.commit()

        self.defer(self.notifier.send_phone_otp, phone_number, otp)

    def verify_phone_otp(self, phone_number: str, otp: str) -> VerificationResult:
        account = self._find_by_phone(phone_number)
        if not account:
            raise errors.NotFound()
        if account.phone_verified:
            return VerificationResult(account, None, already_verified=True)

        self._check_otp(account.phone_otp, account.phone_otp_expires, otp)
        consumed = self._consume(
            account,
            Account.phone_otp == account.phone_otp,
            {"phone_verified": True, "phone_otp": None, "phone_otp_expires": None},
        )
        if not consumed:
            raise errors.InvalidCode()
        logger.info(f"✅ Phone verified for account {account.id}")
        return VerificationResult(account, create_session_token(account, self.config, self.clock()))

    # --- email OTP ---

    def send_email_otp(self, email: str) -> None:
        account = self._find_by_email(email)
        if not account:
            raise errors.NotFound()
        if account.email_verified:
            raise errors.AlreadyVerified()

        otp = generate_otp()
        account.email_otp = otp
        account.email_otp_expires = self._otp_expiry()
        self.db.commit()

        self.defer(
            self.notifier.send_email_otp, account.email, account.name, otp,
            lifetime_minutes=self.config.otp_lifetime_minutes,
        )

    def verify_email_otp(self, email: str, otp: str) -> VerificationResult:
        account = self._find_by_email(email)
        if not account:
            raise errors.NotFound()
        if account.email_verified:
            return VerificationResult(account, None, already_verified=True)

        self._check_otp(account.email_otp, account.email_otp_expires, otp)
        consumed = self._consume(
            account,
            Account.email_otp == account.email_otp,
            {"email_verified": True, "email_otp": None, "email_otp_expires": None},
        )
        if not consumed:
            raise errors.InvalidCode()
        logger.info(f"✅ Email verified by OTP for account {account.id}")
        return VerificationResult(account, create_session_token(account, self.config, self.clock()))

    # --- email link ---

    def verify_email_link(self, token: str) -> Account:
        if not token:
            raise errors.InvalidToken()
        account = self.db.query(Account).filter(Account.verification_token == token).first()
        if not account:
            raise errors.InvalidToken()

        consumed = self._consume(
            account,
            Account.verification_token == token,
            {"email_verified": True, "verification_token": None},
        )
        if not consumed:
            raise errors.InvalidToken()
        logger.info(f"✅ Email verified by link for account {account.id}")

        # синхронно: флаг уже сохранён, сбой провайдера превращается в 500
        self.notifier.send_welcome_email(account.email, account.name)
        return account

    def resend_verification(self, email: str) -> None:
        account = self._find_by_email(email)
        if not account:
            raise errors.NotFound()
        if account.email_verified:
            raise errors.AlreadyVerified()

        token = generate_opaque_token()
        account.verification_token = token
        self.db.commit()

        self.defer(self.notifier.send_verification_email, account.email, account.name, token)

    # --- login ---

    def login(self, email: str, password: str) -> LoginResult:
        account = self._find_by_email(email)
        if not verify_password(password, account.password_hash if account else None):
            logger.info(f"Login failed for email {email}")
            raise errors.InvalidCredentials()

        if not account.is_verified:
            raise errors.NeedsVerification(
                needsVerification=True,
                email=account.email,
                phoneNumber=account.phone_number,
            )

        token = create_session_token(account, self.config, self.clock())
        return LoginResult(account, token, account.is_approved)

    # --- password reset ---

    def forgot_password(self, email: str) -> str:
        """Одинаковый ответ для существующего и несуществующего email."""
        account = self._find_by_email(email)
        if not account:
            logger.info(f"Password reset requested for unknown email {email}")
            return FORGOT_PASSWORD_MESSAGE

        token = generate_opaque_token()
        account.reset_password_token = token
        account.reset_password_expires = self.clock() + timedelta(minutes=self.config.reset_lifetime_minutes)
        self.db.commit()

        # синхронно: сбой провайдера превращается в 500
        self.notifier.send_password_reset_email(
            account.email, account.name, token, lifetime_minutes=self.config.reset_lifetime_minutes
        )
        return FORGOT_PASSWORD_MESSAGE

    def reset_password(self, token: str, new_password: str) -> Account:
        if not token:
            raise errors.InvalidOrExpiredToken()
        # токен и срок проверяются одним запросом
        account = (
            self.db.query(Account)
            .filter(Account.reset_password_token == token, Account.reset_password_expires > self.clock())
            .first()
        )
        if not account:
            raise errors.InvalidOrExpiredToken()

        consumed = self._consume(
            account,
            Account.reset_password_token == token,
            {
                "password_hash": hash_password(new_password),
                "reset_password_token": None,
                "reset_password_expires": None,
            },
        )
        if not consumed:
            raise errors.InvalidOrExpiredToken()
        logger.info(f"✅ Password reset for account {account.id}")

        try:
            self.notifier.send_password_reset_confirmation(account.email, account.name)
        except Exception:
            logger.exception(f"❌ Password reset confirmation to {account.email} failed")
        return account
