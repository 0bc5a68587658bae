# foodmandu/core/security.py
# Функции для хеширования паролей, выпуска/проверки JWT и зависимости авторизации.
from datetime import datetime, timedelta

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from foodmandu.core.clock import utcnow
from foodmandu.core.config import AuthConfig, settings
from foodmandu.db.session import get_db
from foodmandu.models.account import Account, RoleEnum

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def get_auth_config() -> AuthConfig:
    """Зависимость: конфигурация сервиса. В тестах переопределяется."""
    return settings.auth_config()


def hash_password(password: str) -> str:
    """Хешируем пароль для хранения в БД (bcrypt, соль на каждый хеш)."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Проверяем пароль при логине. Без хеша время ответа то же, результат False."""
    if not hashed_password:
        pwd_context.dummy_verify()
        return False
    return pwd_context.verify(plain_password, hashed_password)


def create_session_token(account: Account, config: AuthConfig, now: datetime | None = None) -> str:
    """Создаём JWT: sub = id пользователя, роль и флаг админа, срок token_lifetime_days."""
    issued = now or utcnow()
    to_encode = {
        "sub": str(account.id),
        "role": RoleEnum(account.role).value,
        "isAdmin": bool(account.is_admin),
        "exp": issued + timedelta(days=config.token_lifetime_days),
    }
    return jwt.encode(to_encode, config.secret_key, algorithm=config.algorithm)


def decode_session_token(token: str, config: AuthConfig) -> dict:
    """Декодирует и проверяет подпись и срок. Бросает JWTError."""
    return jwt.decode(token, config.secret_key, algorithms=[config.algorithm])


def get_current_claims(
    token: str = Depends(oauth2_scheme),
    config: AuthConfig = Depends(get_auth_config),
) -> dict:
    """Возвращает claims из bearer-токена или бросает 401."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_session_token(token, config)
    except JWTError:
        raise credentials_exception
    if payload.get("sub") is None:
        raise credentials_exception
    return payload


def get_current_account(
    claims: dict = Depends(get_current_claims),
    db: Session = Depends(get_db),
) -> Account:
    """Возвращает текущего пользователя по JWT или бросает 401."""
    try:
        account_id = int(claims["sub"])
    except (TypeError, ValueError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Could not validate credentials")
    account = db.get(Account, account_id)
    if account is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Could not validate credentials")
    return account


def require_role(*roles: str):
    """Фабрика зависимости: проверяет роль из токена."""
    def _checker(claims: dict = Depends(get_current_claims)) -> dict:
        if claims.get("role") not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient privileges")
        return claims
    return _checker


def require_admin(claims: dict = Depends(get_current_claims)) -> dict:
    if not claims.get("isAdmin") and claims.get("role") != RoleEnum.admin.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Admin privileges required.",
        )
    return claims
