# foodmandu/schemas/auth.py
# Pydantic-схемы запросов/ответов. JSON в camelCase, как его шлёт фронтенд.
from typing import Annotated, List, Literal, Optional, Union

from email_validator import EmailNotValidError, validate_email
from pydantic import AfterValidator, BaseModel, ConfigDict, Discriminator, Field, StringConstraints, Tag
from pydantic.alias_generators import to_camel

PhoneNumber = Annotated[str, StringConstraints(strip_whitespace=True, pattern=r"^\+?\d{6,15}$")]


def _check_email(value: str) -> str:
    """Проверяет синтаксис адреса, но хранит его ровно в том виде, как ввёл пользователь."""
    value = value.strip()
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        raise ValueError("Invalid email address")
    return value


# EmailStr нормализует домен, а поиск учётной записи идёт по точному совпадению
Email = Annotated[str, AfterValidator(_check_email)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RestaurantDetails(CamelModel):
    restaurant_name: str = Field(..., min_length=1)
    cuisine: List[str] = Field(default_factory=list)
    address: str = Field(..., min_length=1)
    description: Optional[str] = None
    phone: Optional[str] = None


class SignupBase(CamelModel):
    name: str = Field(..., min_length=1)
    email: Email
    password: str = Field(..., min_length=6)
    phone_number: PhoneNumber


class CustomerSignup(SignupBase):
    role: Literal["customer"] = "customer"


class RestaurantSignup(SignupBase):
    role: Literal["restaurant"]
    restaurant_details: RestaurantDetails


def _signup_role(value) -> str:
    # без role регистрируем покупателя
    if isinstance(value, dict):
        return value.get("role") or "customer"
    return getattr(value, "role", None) or "customer"


# Профиль ресторана есть только у варианта role="restaurant"
SignupPayload = Annotated[
    Union[
        Annotated[CustomerSignup, Tag("customer")],
        Annotated[RestaurantSignup, Tag("restaurant")],
    ],
    Discriminator(_signup_role),
]


class LoginPayload(CamelModel):
    email: Email
    password: str


class PhonePayload(CamelModel):
    phone_number: PhoneNumber


class PhoneOTPPayload(PhonePayload):
    otp: str


class EmailPayload(CamelModel):
    email: Email


class EmailOTPPayload(EmailPayload):
    otp: str


class ResetPasswordPayload(CamelModel):
    password: str = Field(..., min_length=6)


class UserOut(CamelModel):
    id: int
    name: str
    email: str
    phone_number: str
    role: str
    is_admin: bool
    is_approved: bool

    @classmethod
    def from_account(cls, account) -> "UserOut":
        return cls(
            id=account.id,
            name=account.name,
            email=account.email,
            phone_number=account.phone_number,
            role=getattr(account.role, "value", account.role),
            is_admin=bool(account.is_admin),
            is_approved=account.is_approved,
        )

    def as_json(self) -> dict:
        return self.model_dump(by_alias=True)
