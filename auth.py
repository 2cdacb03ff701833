import logging
from datetime import timedelta
from typing import Any, Dict, Optional

from bson import ObjectId
from fastapi import Depends, Request, Response
from fastapi.security import OAuth2PasswordBearer
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from database import epoch_seconds, utcnow
from dependencies import ConfigDep, DbDep
from errors import Forbidden, Unauthorized
from settings import Settings

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refresh_token"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/admin/login", auto_error=False)


# ---------------------- Passwords ----------------------
def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


# ---------------------- Tokens ----------------------
def _encode(claims: Dict[str, Any], secret: str, expires_in: int) -> str:
    now = utcnow()
    to_encode = dict(claims)
    to_encode.update({"iat": int(now.timestamp()), "exp": now + timedelta(seconds=expires_in)})
    return jwt.encode(to_encode, secret, algorithm=ALGORITHM)


def create_access_token(admin: Dict[str, Any], settings: Settings) -> str:
    claims = {
        "sub": str(admin["_id"]),
        "email": admin["email"],
        "role": admin.get("role", "admin"),
        "type": "access",
    }
    return _encode(claims, settings.jwt_secret, settings.access_token_expires_seconds)


def create_refresh_token(admin: Dict[str, Any], settings: Settings) -> str:
    claims = {"sub": str(admin["_id"]), "type": "refresh"}
    return _encode(claims, settings.jwt_refresh_secret, settings.refresh_token_expires_seconds)


def decode_token(token: str, secret: str, expected_type: str) -> Dict[str, Any]:
    try:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM])
    except ExpiredSignatureError:
        raise Unauthorized("Token expired. Please log in again.")
    except JWTError as exc:
        raise Unauthorized("Invalid token", detail=str(exc))
    if payload.get("type") != expected_type or not payload.get("sub"):
        raise Unauthorized("Invalid token")
    return payload


def set_auth_cookies(response: Response, settings: Settings, access_token: str, refresh_token: str) -> None:
    for name, value, max_age in (
        (ACCESS_COOKIE, access_token, settings.access_token_expires_seconds),
        (REFRESH_COOKIE, refresh_token, settings.refresh_token_expires_seconds),
    ):
        response.set_cookie(
            name,
            value,
            max_age=max_age,
            httponly=True,
            secure=settings.is_production,
            samesite="lax",
            path="/",
        )


def clear_auth_cookies(response: Response, settings: Settings) -> None:
    for name in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(name, path="/", httponly=True, secure=settings.is_production, samesite="lax")


def load_admin(db, admin_id: str) -> Optional[Dict[str, Any]]:
    if not ObjectId.is_valid(admin_id):
        return None
    return db["admins"].find_one({"_id": ObjectId(admin_id)})


def token_issued_before_password_change(admin: Dict[str, Any], issued_at: Any) -> bool:
    changed_at = admin.get("passwordChangedAt")
    if not changed_at or issued_at is None:
        return False
    return int(issued_at) < int(epoch_seconds(changed_at))


# ---------------------- Dependencies ----------------------
async def get_current_admin(
    request: Request,
    db: DbDep,
    settings: ConfigDep,
    bearer: Optional[str] = Depends(oauth2_scheme),
) -> Dict[str, Any]:
    token = bearer or request.cookies.get(ACCESS_COOKIE)
    if not token:
        raise Unauthorized(
            "You must be logged in to perform this action. Please provide a valid authentication token."
        )

    payload = decode_token(token, settings.jwt_secret, "access")
    admin = load_admin(db, payload["sub"])
    if not admin:
        raise Unauthorized("User account not found")
    if token_issued_before_password_change(admin, payload.get("iat")):
        raise Unauthorized("Password was changed. Please log in again.")
    return admin


def require_roles(*roles: str):
    async def check_role(admin: Dict[str, Any] = Depends(get_current_admin)) -> Dict[str, Any]:
        if admin.get("role") not in roles:
            logger.info("Admin %s with role %s denied; requires %s", admin.get("email"), admin.get("role"), roles)
            raise Forbidden(f"Access forbidden. Required roles: {', '.join(roles)}")
        return admin

    return check_role


# editors manage site content; admin accounts are managed in routers/admin.py
require_editor = require_roles("admin", "editor")
