#  Voice Tutor - Voice Routes
#
#  Public voice catalogue. With a valid token, voices suited to the
#  learner's age are flagged as recommended.
#
#  Depends on: services/voices.py, middleware/auth.py, rate_limit.py
#  Used by:    app.py

from fastapi import APIRouter, Depends

from backend.middleware.auth import get_optional_user
from backend.models.schemas import VoiceList, VoiceOut
from backend.rate_limit import RateLimit
from backend.services.voices import AVAILABLE_VOICES, recommended_for_age

router = APIRouter(prefix="/voices", tags=["voices"], dependencies=[Depends(RateLimit())])


@router.get("")
async def list_voices(user: dict | None = Depends(get_optional_user)) -> VoiceList:
    recommended = {v.id for v in recommended_for_age(user["age"])} if user else set()
    return VoiceList(voices=[
        VoiceOut(**voice.to_dict(), recommended=voice.id in recommended)
        for voice in AVAILABLE_VOICES
    ])
