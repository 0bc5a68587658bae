# foodmandu/core/errors.py
# Иерархия ошибок сервиса учётных записей.
# Обработчик в main.py превращает AuthError в JSON-ответ {"message": ..., **extra}.


class AuthError(Exception):
    """Базовая ошибка: HTTP-код, безопасное для клиента сообщение и доп. поля ответа."""

    status_code = 400
    message = "Bad request"

    def __init__(self, message: str | None = None, **extra):
        self.message = message or self.message
        self.extra = extra
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"message": self.message, **self.extra}


class Conflict(AuthError):
    status_code = 409
    message = "User already exists but is not verified."


class Duplicate(AuthError):
    status_code = 400
    message = "User already exists"


class NotFound(AuthError):
    status_code = 404
    message = "User not found"


class InvalidCredentials(AuthError):
    # одно сообщение для "нет аккаунта" и "неверный пароль"
    status_code = 400
    message = "Invalid credentials"


class NeedsVerification(AuthError):
    status_code = 403
    message = "Please verify your account to continue."


class InvalidCode(AuthError):
    status_code = 400
    message = "Invalid OTP"


class Expired(AuthError):
    status_code = 400
    message = "OTP expired"


class InvalidToken(AuthError):
    status_code = 400
    message = "Invalid or expired verification token"


class InvalidOrExpiredToken(AuthError):
    status_code = 400
    message = "Invalid or expired reset token"


class AlreadyVerified(AuthError):
    status_code = 400
    message = "Email already verified"
