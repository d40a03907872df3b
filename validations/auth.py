from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field, ValidationInfo, field_validator

from security.password_policy import validate_password


def _normalize_email(value: str) -> str:
    return value.strip().lower()


Email = Annotated[EmailStr, AfterValidator(_normalize_email)]


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class _NewPassword(_Body):
    password: str = Field(min_length=1)
    confirm_password: str = Field(alias="confirmPassword", min_length=1)

    @field_validator("password")
    @classmethod
    def _password_policy(cls, value: str) -> str:
        valid, errors = validate_password(value)
        if not valid:
            raise ValueError("; ".join(errors))
        return value

    @field_validator("confirm_password")
    @classmethod
    def _passwords_match(cls, value: str, info: ValidationInfo) -> str:
        if "password" in info.data and value != info.data["password"]:
            raise ValueError("Passwords do not match")
        return value


class RegisterRequest(_NewPassword):
    name: str = Field(min_length=1, max_length=120)
    email: Email


class LoginRequest(_Body):
    email: Email
    password: str = Field(min_length=1)


class ForgotPasswordRequest(_Body):
    email: Email


class CodeRequest(_Body):
    code: str = Field(min_length=1, max_length=64)


class ResetPasswordRequest(_NewPassword):
    code: str = Field(min_length=1, max_length=64)


class ChangePasswordRequest(_NewPassword):
    current_password: str = Field(alias="currentPassword", min_length=1)
