# app/core/auth_utils.py
from enum import Enum

from fastapi import Header, HTTPException
from jose import jwt, JWTError

from app.core.config import JWT_SECRET_KEY, JWT_ALGORITHM


class Role(str, Enum):
    STUDENT = "student"
    INSTRUCTOR = "instructor"
    ADMIN = "admin"


class Principal:
    """
    The authenticated actor of a request, as issued by the identity provider
    """
    def __init__(self, user_id: str, role: Role):
        self.user_id = user_id
        self.role = role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_student(self) -> bool:
        return self.role == Role.STUDENT

    def __repr__(self):
        return f"Principal(user_id={self.user_id!r}, role={self.role.value!r})"


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or Expired Token")


def principal_from_claims(payload: dict) -> Principal:
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token: missing user id")

    try:
        role = Role(payload.get("role"))
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid token: unknown role")

    return Principal(str(user_id), role)


def verify_bearer_token(authorization: str = Header(None)) -> Principal:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Unauthorized")

    token = authorization.split(" ", 1)[1].strip()
    return principal_from_claims(decode_token(token))
