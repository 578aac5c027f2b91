"""FastAPI API endpoints under /api.

Endpoint groups: health + locale, auth, stories (CRUD, active selection,
clone, chapter order, manuscript autosave, community catalog), generation (profiles, world
details, synopsis, images, illustrations, chat) and nested entities
(characters, worlds, chapters, items, illustrations) under
/api/stories/{story_id}/.

Order matters: the generic /stories/{story_id}/{kind} entity routes are
included last so the fixed paths above them win.
"""

from fastapi import APIRouter

from .auth import router as auth_router
from .entities import router as entities_router
from .generate import router as generate_router
from .settings import router as settings_router
from .stories import router as stories_router

router = APIRouter()
router.include_router(settings_router)
router.include_router(auth_router)
router.include_router(stories_router)
router.include_router(generate_router)
router.include_router(entities_router)
