# foodmandu/api/auth.py
# Роуты регистрации, подтверждения аккаунта, входа и восстановления пароля.
# Ошибки сервиса (AuthError) превращаются в JSON обработчиком из main.py.
from fastapi import APIRouter, Body, Depends, status

from foodmandu.api.deps import get_credential_service
from foodmandu.core.security import get_current_account
from foodmandu.models.account import Account
from foodmandu.schemas.auth import (
    EmailOTPPayload,
    EmailPayload,
    LoginPayload,
    PhoneOTPPayload,
    PhonePayload,
    ResetPasswordPayload,
    SignupPayload,
    UserOut,
)
from foodmandu.services.credentials import CredentialService, VerificationResult

router = APIRouter()


def _verification_response(result: VerificationResult, channel: str) -> dict:
    if result.already_verified:
        return {"message": f"{channel} already verified", "verified": True}
    return {
        "message": f"{channel} verified successfully",
        "verified": True,
        "token": result.token,
        "user": UserOut.from_account(result.account).as_json(),
    }


@router.post("/signup", status_code=status.HTTP_201_CREATED)
def signup(payload: SignupPayload = Body(...), service: CredentialService = Depends(get_credential_service)):
    """
    Регистрация: аккаунт создаётся неподтверждённым, токен не выдаётся.
    Подтверждение через OTP по email или телефону по выбору пользователя.
    """
    service.signup(payload)
    return {
        "message": "Registration successful! Please verify your account using OTP.",
        "emailSent": False,
    }


@router.post("/login")
def login(payload: LoginPayload, service: CredentialService = Depends(get_credential_service)):
    result = service.login(payload.email, payload.password)
    return {"token": result.token, "user": UserOut.from_account(result.account).as_json()}


@router.post("/send-phone-otp")
def send_phone_otp(payload: PhonePayload, service: CredentialService = Depends(get_credential_service)):
    """SMS уходит в фоне после ответа; сбой доставки только логируется."""
    service.send_phone_otp(payload.phone_number)
    return {"message": "OTP sent successfully"}


@router.post("/verify-phone-otp")
def verify_phone_otp(payload: PhoneOTPPayload, service: CredentialService = Depends(get_credential_service)):
    result = service.verify_phone_otp(payload.phone_number, payload.otp)
    return _verification_response(result, "Phone")


@router.post("/send-email-otp")
def send_email_otp(payload: EmailPayload, service: CredentialService = Depends(get_credential_service)):
    service.send_email_otp(payload.email)
    return {"message": "OTP sent to email"}


@router.post("/verify-email-otp")
def verify_email_otp(payload: EmailOTPPayload, service: CredentialService = Depends(get_credential_service)):
    result = service.verify_email_otp(payload.email, payload.otp)
    return _verification_response(result, "Email")


@router.get("/verify-email/{token}")
def verify_email(token: str, service: CredentialService = Depends(get_credential_service)):
    service.verify_email_link(token)
    return {"message": "Email verified successfully! You can now log in."}


@router.post("/resend-verification")
def resend_verification(payload: EmailPayload, service: CredentialService = Depends(get_credential_service)):
    service.resend_verification(payload.email)
    return {"message": "Verification email sent! Please check your inbox."}


@router.post("/forgot-password")
def forgot_password(payload: EmailPayload, service: CredentialService = Depends(get_credential_service)):
    return {"message": service.forgot_password(payload.email)}


@router.post("/reset-password/{token}")
def reset_password(
    token: str,
    payload: ResetPasswordPayload,
    service: CredentialService = Depends(get_credential_service),
):
    service.reset_password(token, payload.password)
    return {"message": "Password reset successful! You can now log in with your new password."}


@router.get("/me")
def me(account: Account = Depends(get_current_account)):
    """Профиль владельца bearer-токена."""
    return UserOut.from_account(account).as_json()
