from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from schemas.catalog_schemas import RestaurantCreateRequest
import phonenumbers
import re


def normalize_phone(value: Optional[str]) -> Optional[str]:
    """
    Validates a phone number with Google's phonenumbers library and returns
    it in E.164 form. International format is required: +639171234567
    """
    if value is None or not value.strip():
        return None
    try:
        parsed = phonenumbers.parse(value, None)
        if not phonenumbers.is_valid_number(parsed):
            raise ValueError('Invalid phone number')

        return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)

    except phonenumbers.NumberParseException:
        raise ValueError('Phone number must include country code (e.g.: +639xxxxxxxxx, +20xxxxxxxxxx)')


class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str


class CreateUserRequest(BaseModel):
    email: EmailStr
    name: str = Field(min_length=1, max_length=120)
    password: str
    role: Literal["customer", "restaurant", "rider"] = "customer"
    phone_number: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    # Riders only
    vehicle_type: Optional[Literal["motorcycle", "bicycle", "car"]] = None
    license_number: Optional[str] = None
    # Required for restaurant owners: the admin approves the account through it
    restaurant: Optional[RestaurantCreateRequest] = None

    @field_validator('password')
    @classmethod
    def validate_password(cls, value):
        """
        Password must be at least 8 characters and contain:
        - At least one letter
        - At least one digit
        """
        if len(value) < 8:
            raise ValueError('Password must be at least 8 characters')

        if not re.search(r'[A-Za-z]', value):
            raise ValueError('Password must contain at least one letter')

        if not re.search(r'\d', value):
            raise ValueError('Password must contain at least one digit')

        return value

    @field_validator('phone_number')
    @classmethod
    def validate_phone(cls, value):
        return normalize_phone(value)

    @model_validator(mode="after")
    def require_restaurant_for_owners(self):
        if self.role == "restaurant" and self.restaurant is None:
            raise ValueError("Restaurant details are required for restaurant accounts")
        return self


class UpdateProfileRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    phone_number: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    vehicle_type: Optional[Literal["motorcycle", "bicycle", "car"]] = None
    license_number: Optional[str] = None

    @field_validator('phone_number')
    @classmethod
    def validate_phone(cls, value):
        return normalize_phone(value)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: str
    role: str
    status: str
    is_active: bool
    phone_number: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    vehicle_type: Optional[str] = None
    license_number: Optional[str] = None


class RefreshTokenRequest(BaseModel):
    refresh_token: str
    
    @field_validator('refresh_token')
    @classmethod
    def validate_token(cls, value):
        if not value or not value.strip():
            raise ValueError('Refresh token cannot be empty')
        return value

class RevokeTokenRequest(RefreshTokenRequest):
    pass


class DeactivateUserRequest(BaseModel):
    password: str
