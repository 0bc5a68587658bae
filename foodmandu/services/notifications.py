# foodmandu/services/notifications.py
# Отправка SMS (Twilio) и писем (SendGrid) с шаблонами сообщений сервиса.
# Без учётных данных провайдера используется LogTransport: сообщение только пишется в лог.
import logging

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail as SendGridMail
from twilio.rest import Client as TwilioClient

from foodmandu.core.config import Settings

logger = logging.getLogger(__name__)


class TwilioSmsTransport:
    def __init__(self, account_sid: str, auth_token: str, from_number: str):
        self.from_number = from_number
        self.client = TwilioClient(account_sid, auth_token)

    def send_sms(self, to: str, body: str) -> None:
        message = self.client.messages.create(to=to, from_=self.from_number, body=body)
        logger.info(f"✅ SMS sent to {to}, sid: {message.sid}")


class SendGridEmailTransport:
    def __init__(self, api_key: str, from_email: str):
        self.from_email = from_email
        self.client = SendGridAPIClient(api_key)

    def send_email(self, to: str, subject: str, html: str) -> None:
        message = SendGridMail(
            from_email=self.from_email,
            to_emails=to,
            subject=subject,
            html_content=html,
        )
        response = self.client.send(message)
        logger.info(f"✅ Email sent to {to}, status: {response.status_code}")


def describe_minutes(minutes: int) -> str:
    """Срок жизни для текста письма: "10 minutes", "1 hour", "2 hours"."""
    if minutes >= 60 and minutes % 60 == 0:
        hours = minutes // 60
        return "1 hour" if hours == 1 else f"{hours} hours"
    return "1 minute" if minutes == 1 else f"{minutes} minutes"


class LogTransport:
    """Провайдер не настроен: сообщения только логируются (dev-окружение)."""

    def send_sms(self, to: str, body: str) -> None:
        logger.warning(f"⚠️ SMS provider not configured. SMS for {to}: {body}")

    def send_email(self, to: str, subject: str, html: str) -> None:
        logger.warning(f"⚠️ Email provider not configured. Email for {to} [{subject}]: {html}")


class Notifier:
    """Шаблоны сообщений поверх транспортов SMS и email."""

    def __init__(self, sms_transport, email_transport, app_name: str = "FoodMandu AI",
                 frontend_url: str = "http://localhost:5173"):
        self.sms = sms_transport
        self.email = email_transport
        self.app_name = app_name
        self.frontend_url = frontend_url.rstrip("/")

    def send_phone_otp(self, phone_number: str, otp: str) -> None:
        # Twilio ожидает номер в формате E.164
        to = phone_number if phone_number.startswith("+") else f"+{phone_number}"
        self.sms.send_sms(to, f"Your {self.app_name} verification code is: {otp}")

    def send_email_otp(self, email: str, name: str, otp: str, lifetime_minutes: int = 10) -> None:
        self.email.send_email(
            email,
            f"{self.app_name} verification code",
            f"<p>Hello {name},</p><p>Your verification code is: <b>{otp}</b></p>"
            f"<p>The code expires in {describe_minutes(lifetime_minutes)}.</p>",
        )

    def send_verification_email(self, email: str, name: str, token: str) -> None:
        link = f"{self.frontend_url}/verify-email/{token}"
        self.email.send_email(
            email,
            f"Verify your {self.app_name} account",
            f"<p>Hello {name},</p><p>Please verify your email: <a href=\"{link}\">{link}</a></p>",
        )

    def send_welcome_email(self, email: str, name: str) -> None:
        self.email.send_email(
            email,
            f"Welcome to {self.app_name}",
            f"<p>Hello {name},</p><p>Your email is verified. Enjoy ordering!</p>",
        )

    def send_password_reset_email(self, email: str, name: str, token: str, lifetime_minutes: int = 60) -> None:
        link = f"{self.frontend_url}/reset-password/{token}"
        self.email.send_email(
            email,
            f"{self.app_name} password reset",
            f"<p>Hello {name},</p><p>Reset your password: <a href=\"{link}\">{link}</a></p>"
            f"<p>The link expires in {describe_minutes(lifetime_minutes)}.</p>",
        )

    def send_password_reset_confirmation(self, email: str, name: str) -> None:
        self.email.send_email(
            email,
            f"{self.app_name} password changed",
            f"<p>Hello {name},</p><p>Your password has been reset successfully.</p>",
        )


def build_notifier(settings: Settings) -> Notifier:
    """Выбирает транспорты по наличию учётных данных провайдеров."""
    if all([settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN, settings.TWILIO_PHONE_NUMBER]):
        sms = TwilioSmsTransport(
            settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN, settings.TWILIO_PHONE_NUMBER
        )
    else:
        logger.warning("⚠️ Twilio not configured, SMS will be logged only")
        sms = LogTransport()

    if settings.SENDGRID_API_KEY and settings.MAIL_FROM_EMAIL:
        email = SendGridEmailTransport(settings.SENDGRID_API_KEY, settings.MAIL_FROM_EMAIL)
    else:
        logger.warning("⚠️ SendGrid not configured, emails will be logged only")
        email = LogTransport()

    return Notifier(sms, email, app_name=settings.APP_NAME, frontend_url=settings.FRONTEND_URL)


def run_supervised(func, *args, **kwargs) -> None:
    """Фоновая отправка: ошибка логируется и не уходит дальше."""
    try:
        func(*args, **kwargs)
    except Exception:
        logger.exception(f"❌ Background notification {getattr(func, '__name__', func)} failed")
