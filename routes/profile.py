"""
Route handlers for the caller's 360 assessment used to personalize coaching.
"""
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from auth import current_user_id, unauthorized_response
from models.api_models import PersonalizationContext
from routes.chat import internal_error_response
from utils.logger import app_logger
from utils.storage import Storage, get_storage

router = APIRouter()


@router.post("/api/lgp360")
async def save_assessment(
    profile: PersonalizationContext,
    request: Request,
    storage: Storage = Depends(get_storage)
):
    """Store the authenticated user's assessment."""
    user_id = current_user_id(request)
    if not user_id:
        return unauthorized_response()

    try:
        saved = storage.save_profile(user_id, profile)
        return {"success": True, "assessment": saved.model_dump(by_alias=True, exclude_none=True)}
    except Exception as e:
        app_logger.error(f"Save assessment error: {str(e)}")
        return internal_error_response()


@router.get("/api/lgp360")
async def get_assessment(request: Request, storage: Storage = Depends(get_storage)):
    """Return the authenticated user's assessment."""
    user_id = current_user_id(request)
    if not user_id:
        return unauthorized_response()

    try:
        profile = storage.get_personalization(user_id)
        if not profile:
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content={"error": "No assessment uploaded"}
            )
        return profile.model_dump(by_alias=True, exclude_none=True)
    except Exception as e:
        app_logger.error(f"Get assessment error: {str(e)}")
        return internal_error_response()
