"""Health check and locale endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from storywizard.workspace import Workspace

from .deps import get_workspace
from .models import LocaleBody

router = APIRouter()


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


def _locale_state(workspace: Workspace) -> dict:
    localizer = workspace.localizer
    return {
        "locale": localizer.locale,
        "direction": localizer.direction,
        "available": localizer.available_locales(),
    }


@router.get("/locale")
async def get_locale(workspace: Workspace = Depends(get_workspace)):
    """Get the selected locale, its text direction and the shipped locales."""
    return _locale_state(workspace)


@router.put("/locale")
async def set_locale(body: LocaleBody, workspace: Workspace = Depends(get_workspace)):
    """Switch the display locale."""
    try:
        workspace.localizer.set_locale(body.locale)
    except ValueError as e:
        raise HTTPException(422, str(e))
    return _locale_state(workspace)


@router.get("/translations")
async def translations(workspace: Workspace = Depends(get_workspace)):
    """Translation table for the selected locale (key → display string)."""
    return workspace.localizer.translations
