from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserBase(BaseModel):
    email: EmailStr


class UserCreate(UserBase):
    password: str
    name: str = Field(..., min_length=1, max_length=255)


class UserLogin(UserBase):
    password: str


class UserResponse(BaseModel):
    id: str
    email: str
    name: str

    model_config = ConfigDict(from_attributes=True)


class LoginResponse(BaseModel):
    token: str
    user: UserResponse


class RegisterResponse(BaseModel):
    message: str
    user: UserResponse
