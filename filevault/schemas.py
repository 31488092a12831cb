import string
from typing import List, Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from filevault.core.config import Settings

PHONE_PATTERN = r"^\+?[1-9]\d{6,14}$"


class SignUpRequest(BaseModel):
    email: Optional[str] = None
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    password: str

    @field_validator("email")
    @classmethod
    def check_email(cls, value: Optional[str]) -> Optional[str]:
        # kept as typed, sign-in looks the address up verbatim
        if value is not None:
            try:
                validate_email(value, check_deliverability=False)
            except EmailNotValidError as ex:
                raise ValueError(str(ex)) from ex
        return value

    @model_validator(mode="after")
    def require_contact(self) -> "SignUpRequest":
        if not self.email and not self.phone:
            raise ValueError("At least one valid contact method must be provided")
        return self


class SignInRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email_or_phone: str = Field(..., alias="emailOrPhone", min_length=1)
    password: str = Field(..., min_length=1)


class AccessTokenResponse(BaseModel):
    accessToken: str


class StoredFileResponse(BaseModel):
    sizeBytes: int
    name: str


class FileMetadata(BaseModel):
    systemName: str
    originalName: str
    sizeBytes: int
    mime: str
    extension: str
    userId: str


def password_policy_violations(password: str, settings: Settings) -> List[str]:
    """Names of the password policy rules ``password`` breaks."""
    counts = {
        "min_lowercase": (sum(c in string.ascii_lowercase for c in password), settings.password_min_lowercase),
        "min_uppercase": (sum(c in string.ascii_uppercase for c in password), settings.password_min_uppercase),
        "min_numbers": (sum(c in string.digits for c in password), settings.password_min_numbers),
        "min_symbols": (sum(not c.isalnum() for c in password), settings.password_min_symbols),
    }
    violations = [rule for rule, (found, wanted) in counts.items() if found < wanted]
    if len(password) < settings.password_min_length:
        violations.insert(0, "min_length")
    return violations
