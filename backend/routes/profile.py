#  Voice Tutor - Profile Routes
#
#  View and update the learner's display name and voice.
#
#  Depends on: container.py, services/profile.py, middleware/auth.py, rate_limit.py
#  Used by:    app.py

from dependency_injector.wiring import inject, Provide
from fastapi import APIRouter, Depends, HTTPException

from backend.container import Container
from backend.middleware.auth import get_current_user
from backend.models.schemas import ProfileUpdate, ProfileUpdateResponse, UserEnvelope, UserOut
from backend.rate_limit import RateLimit
from backend.services.profile import ProfileService

router = APIRouter(prefix="/profile", tags=["profile"], dependencies=[Depends(RateLimit())])


@router.get("")
async def get_profile(user: dict = Depends(get_current_user)) -> UserEnvelope:
    return UserEnvelope(user=UserOut(**user))


@router.patch("")
@inject
async def update_profile(
    body: ProfileUpdate,
    user: dict = Depends(get_current_user),
    profiles: ProfileService = Depends(Provide[Container.profiles]),
) -> ProfileUpdateResponse:
    """Change display name and/or voice. Email and age cannot be changed."""
    try:
        updated = await profiles.update_profile(
            user["id"],
            display_name=body.display_name,
            selected_voice=body.selected_voice,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ProfileUpdateResponse(
        message="Profile updated successfully!",
        user=UserOut(**updated),
    )
