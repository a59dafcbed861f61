from pydantic import BaseModel, ConfigDict, EmailStr, Field
from datetime import datetime

class UserCreate(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=6)
    password_confirmation: str | None = None
    country: str | None = None
    profile_pic: str | None = None

class UserLogin(BaseModel):
    email: EmailStr
    password: str

class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: EmailStr
    role: str
    country: str | None = None
    profile_pic: str | None = None
    created_at: datetime | None = None

class UserUpdate(BaseModel):
    """Ajustes del perfil: solo se cambian los campos enviados."""
    name: str | None = Field(default=None, min_length=1)
    country: str | None = None
    profile_pic: str | None = None

class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(min_length=6)
    new_password_confirmation: str
