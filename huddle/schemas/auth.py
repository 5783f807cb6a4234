from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    username: str = Field(..., max_length=64)


class LoginResponse(BaseModel):
    success: bool = True
    token: str
    username: str


class VerifyRequest(BaseModel):
    token: str


class VerifyResponse(BaseModel):
    success: bool = True
    username: str
