import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request, Response

from auth import (
    REFRESH_COOKIE,
    clear_auth_cookies,
    create_access_token,
    create_refresh_token,
    decode_token,
    get_current_admin,
    get_password_hash,
    load_admin,
    oauth2_scheme,
    set_auth_cookies,
    token_issued_before_password_change,
    verify_password,
)
from database import count_documents, create_document, serialize, update_document, utcnow
from dependencies import ConfigDep, DbDep
from errors import Conflict, Forbidden, Unauthorized, ValidationFailed
from responses import success
from schemas import Admin, AdminLogin, AdminProfileUpdate, AdminSignup, PasswordChange, RefreshRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def _public_admin(admin: Dict[str, Any]) -> Dict[str, Any]:
    data = serialize(admin)
    data.pop("passwordChangedAt", None)
    return data


# ---------------------- Auth routes ----------------------
@router.post("/signup", status_code=201)
async def signup(
    payload: AdminSignup,
    request: Request,
    db: DbDep,
    settings: ConfigDep,
    bearer: Optional[str] = Depends(oauth2_scheme),
):
    # the first account bootstraps the site; later accounts need an admin
    if count_documents(db, "admins") > 0:
        current = await get_current_admin(request, db, settings, bearer)
        if current.get("role") != "admin":
            raise Forbidden("Access forbidden. Required roles: admin")

    email = payload.email.lower()
    if db["admins"].find_one({"email": email}):
        raise Conflict("Admin with this email already exists")

    admin = create_document(
        db,
        "admins",
        Admin(
            full_name=payload.full_name,
            email=email,
            password_hash=get_password_hash(payload.password),
            role=payload.role,
        ),
    )
    logger.info("Registered admin %s (%s)", email, payload.role)
    return success(_public_admin(admin), "Admin registered successfully")


@router.post("/login")
async def login(payload: AdminLogin, response: Response, db: DbDep, settings: ConfigDep):
    admin = db["admins"].find_one({"email": payload.email.lower()})
    if not admin or not verify_password(payload.password, admin.get("passwordHash", "")):
        raise Unauthorized("Invalid email or password")

    access_token = create_access_token(admin, settings)
    refresh_token = create_refresh_token(admin, settings)
    admin = update_document(db, "admins", {"_id": admin["_id"]}, {"lastLogin": utcnow()}) or admin
    set_auth_cookies(response, settings, access_token, refresh_token)

    data = _public_admin(admin)
    data.update({"accessToken": access_token, "refreshToken": refresh_token})
    return success(data, "Login successful")


@router.post("/refresh")
async def refresh(
    request: Request,
    response: Response,
    db: DbDep,
    settings: ConfigDep,
    payload: Optional[RefreshRequest] = None,
):
    token = (payload.refresh_token if payload else None) or request.cookies.get(REFRESH_COOKIE)
    if not token:
        raise Unauthorized("Refresh token is required")

    claims = decode_token(token, settings.jwt_refresh_secret, "refresh")
    admin = load_admin(db, claims["sub"])
    if not admin:
        raise Unauthorized("User account not found")
    if token_issued_before_password_change(admin, claims.get("iat")):
        raise Unauthorized("Password was changed. Please log in again.")

    access_token = create_access_token(admin, settings)
    set_auth_cookies(response, settings, access_token, token)
    return success({"accessToken": access_token}, "Token refreshed")


@router.post("/logout")
async def logout(response: Response, settings: ConfigDep):
    clear_auth_cookies(response, settings)
    return success(message="Logged out successfully")


# ---------------------- Profile ----------------------
@router.get("/profile")
async def get_profile(admin: Dict[str, Any] = Depends(get_current_admin)):
    return success(_public_admin(admin), "Admin details retrieved successfully")


@router.put("/profile")
async def update_profile(
    payload: AdminProfileUpdate,
    db: DbDep,
    admin: Dict[str, Any] = Depends(get_current_admin),
):
    changes = payload.model_dump(by_alias=True, exclude_none=True)
    if not changes:
        raise ValidationFailed(
            "At least one field must be provided",
            errors={"update": "Provide fullName or email"},
        )
    if "email" in changes:
        changes["email"] = changes["email"].lower()
        clash = db["admins"].find_one({"email": changes["email"], "_id": {"$ne": admin["_id"]}})
        if clash:
            raise Conflict("Admin with this email already exists")

    updated = update_document(db, "admins", {"_id": admin["_id"]}, changes)
    return success(_public_admin(updated), "Profile updated successfully")


@router.put("/password")
async def change_password(
    payload: PasswordChange,
    db: DbDep,
    admin: Dict[str, Any] = Depends(get_current_admin),
):
    if not verify_password(payload.current_password, admin.get("passwordHash", "")):
        raise ValidationFailed("Current password is incorrect", errors={"currentPassword": "Incorrect password"})

    # whole seconds so a token issued in the same second as the change stays valid
    changed_at = utcnow().replace(microsecond=0)
    update_document(
        db,
        "admins",
        {"_id": admin["_id"]},
        {"passwordHash": get_password_hash(payload.new_password), "passwordChangedAt": changed_at},
    )
    logger.info("Password changed for admin %s", admin.get("email"))
    return success(message="Password changed successfully")


@router.delete("/profile")
async def delete_account(
    response: Response,
    db: DbDep,
    settings: ConfigDep,
    admin: Dict[str, Any] = Depends(get_current_admin),
):
    db["admins"].delete_one({"_id": admin["_id"]})
    clear_auth_cookies(response, settings)
    logger.info("Deleted admin account %s", admin.get("email"))
    return success(message="Admin account deleted successfully")
