from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession
from storefront import logger
from storefront.auth.dependencies import get_current_user, normalize_email_address, require_admin
from storefront.auth.models import CurrentUser
from storefront.auth.repository import user_by_id
from storefront.common.custom_exceptions import BadRequest, Conflict, NotFound
from storefront.common.utils import success_response
from storefront.db.dependencies import get_image_storage, get_session
from storefront.image_uploads.services import store_image_upload
from storefront.user.models import UserUpdateIn, public_user
from storefront.user.repository import email_taken_by_other, list_users, save_profile_image_url, update_user_profile


user_router = APIRouter()
user_admin_router = APIRouter()


@user_router.get("/me")
async def get_user_profile(current_user: CurrentUser = Depends(get_current_user),
                           session: AsyncSession = Depends(get_session)):
    user = await user_by_id(session, current_user.id)
    if not user:
        raise NotFound("User not found")
    return success_response(public_user(user))


@user_router.put("/me")
async def update_profile(payload: UserUpdateIn, current_user: CurrentUser = Depends(get_current_user),
                         session: AsyncSession = Depends(get_session)):

    values = payload.model_dump(exclude_none=True)
    if "email" in values:
        try:
            values["email"] = normalize_email_address(values["email"])
        except ValueError as e:
            raise BadRequest(f"Invalid email: {e}")
        if await email_taken_by_other(session, values["email"], current_user.id):
            raise Conflict("Email already in use")
    if "name" in values:
        values["name"] = values["name"].strip()

    user = await update_user_profile(session, current_user.id, values)
    if not user:
        raise NotFound("User not found")
    await session.commit()

    logger.info("user.profile.updated", extra={"user_id": current_user.id, "fields": sorted(values)})
    return success_response(public_user(user))


@user_router.post("/me/profile-image")
async def upload_profile_image(file: UploadFile = File(...), current_user: CurrentUser = Depends(get_current_user),
                               session: AsyncSession = Depends(get_session), storage=Depends(get_image_storage)):

    url = await store_image_upload(file, storage, folder=f"users/{current_user.id}")
    updated = await save_profile_image_url(session, current_user.id, url)
    if not updated:
        raise NotFound("User not found")
    await session.commit()

    return success_response({"profile_image_url": url})


@user_admin_router.get("/users")
async def admin_list_users(admin: CurrentUser = Depends(require_admin), session: AsyncSession = Depends(get_session)):
    users = await list_users(session)
    return success_response({"items": [public_user(u) for u in users], "total": len(users)})
