"""Stateless slip check"""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, UploadFile

from ..config import Settings
from ..session import StaticSessionProvider
from ..slip import SlipAuthenticator, prefilter
from .checkout import read_slip
from .deps import get_app_settings, get_authenticator, get_session
from .schemas import SlipResponse

router = APIRouter(prefix="/slip")


@router.post("/validate", response_model=SlipResponse)
async def validate_slip(
    file: UploadFile = File(...),
    _caller: StaticSessionProvider = Depends(get_session),
    authenticator: SlipAuthenticator = Depends(get_authenticator),
    settings: Settings = Depends(get_app_settings),
):
    """Run the slip checks on an image without attaching it to a checkout."""
    image = await read_slip(file, settings.max_slip_bytes)
    result = prefilter(image.content_type, image.size, settings)
    if result.valid:
        result = await authenticator.validate(image)
    return SlipResponse(success=result.valid, valid=result.valid, reason=result.reason)
