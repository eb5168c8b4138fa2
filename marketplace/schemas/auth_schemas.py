from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from marketplace.models.user import UserRole

PHONE_PATTERN = r"^\d{10}$"


class SendOTPRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    phone: str = Field(pattern=PHONE_PATTERN)


class VerifyOTPRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    phone: str = Field(pattern=PHONE_PATTERN)
    otp: str = Field(pattern=r"^\d{6}$")
    # guest cart to fold into the user's cart on login
    session_id: Optional[str] = None


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: Optional[str] = None
    phone: str
    role: UserRole
    wallet: float = 0


class Token(BaseModel):
    access_token: str
    token_type: str
    user: UserOut


class WalletCredit(BaseModel):
    model_config = ConfigDict(extra="forbid")

    amount: float = Field(gt=0)
