"""Settings API endpoints."""

from typing import Annotated

from fastapi import APIRouter, HTTPException, Path, status

from payroll_tracker.api.dependencies import DbSession, ViewerEmail
from payroll_tracker.api.schemas import (
    ErrorResponse,
    SettingsResponse,
    SettingUpdateRequest,
    ViewerTimezoneRequest,
    ViewerTimezoneResponse,
)
from payroll_tracker.services import EmployeeService, SettingsService, SettingValidationError
from payroll_tracker.timeclock import InvalidTimezoneError, tz_abbreviation, utc_offset_label

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("", response_model=SettingsResponse)
async def get_settings(db: DbSession) -> SettingsResponse:
    """Bonus percentages, with defaults for unset keys."""
    return SettingsResponse(settings=await SettingsService(db).get_bonus_settings())


# ============================================================================
# Viewer timezone
# ============================================================================


def _timezone_response(timezone_name: str) -> ViewerTimezoneResponse:
    return ViewerTimezoneResponse(
        timezone=timezone_name,
        offset=utc_offset_label(timezone_name),
        abbreviation=tz_abbreviation(timezone_name),
    )


@router.get("/timezone", response_model=ViewerTimezoneResponse)
async def get_viewer_timezone(
    db: DbSession,
    viewer_email: ViewerEmail,
) -> ViewerTimezoneResponse:
    """Display timezone of the signed-in viewer."""
    return _timezone_response(await EmployeeService(db).get_viewer_timezone(viewer_email))


@router.put(
    "/timezone",
    response_model=ViewerTimezoneResponse,
    responses={400: {"model": ErrorResponse}},
)
async def set_viewer_timezone(
    db: DbSession,
    viewer_email: ViewerEmail,
    payload: ViewerTimezoneRequest,
) -> ViewerTimezoneResponse:
    """Store the viewer's display timezone."""
    if not viewer_email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-User-Email header is required",
        )
    try:
        profile = await EmployeeService(db).set_viewer_timezone(viewer_email, payload.timezone)
        await db.commit()
    except InvalidTimezoneError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _timezone_response(profile.user_timezone)


# Declared last so "/timezone" is not captured as a setting key.
@router.put(
    "/{setting_key}",
    response_model=SettingsResponse,
    responses={400: {"model": ErrorResponse}},
)
async def update_setting(
    db: DbSession,
    setting_key: Annotated[str, Path()],
    payload: SettingUpdateRequest,
) -> SettingsResponse:
    """Change one bonus percentage."""
    service = SettingsService(db)
    try:
        await service.update_setting(setting_key, payload.setting_value)
        await db.commit()
    except SettingValidationError as e:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return SettingsResponse(settings=await service.get_bonus_settings())
