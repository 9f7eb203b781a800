from pydantic import Field, field_validator

from yardsale.schemas.product import CamelModel

# bcrypt only hashes the first 72 bytes and rejects longer input
MAX_PASSWORD_BYTES = 72


def check_password_length(value: str) -> str:
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return value


class Token(CamelModel):
    """Token response schema."""
    access_token: str
    token_type: str = "bearer"


class LoginRequest(CamelModel):
    """Login request schema."""
    username: str
    password: str
    
    @field_validator("username")
    @classmethod
    def strip_username(cls, value: str) -> str:
        return value.strip()
    
    class Config:
        json_schema_extra = {
            "example": {
                "username": "menye",
                "password": "strongpassword123"
            }
        }


class CreateAdminRequest(CamelModel):
    """Schema for creating another administrator."""
    username: str = Field(min_length=1)
    password: str = Field(min_length=6)
    
    @field_validator("username")
    @classmethod
    def strip_username(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Username is required")
        return value
    
    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return check_password_length(value)


class ChangePasswordRequest(CamelModel):
    """Schema for changing the current admin's password."""
    current_password: str
    new_password: str = Field(min_length=6)
    
    @field_validator("new_password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return check_password_length(value)


class VerifyResponse(CamelModel):
    valid: bool = True
    username: str
