"""Signup, login, logout and current-user endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from storywizard.identity import DisposableEmail, DuplicateAccount, InvalidCredentials
from storywizard.workspace import Workspace

from .deps import get_workspace
from .models import LoginBody, SignupBody

router = APIRouter()


@router.post("/auth/signup", status_code=201)
async def signup(body: SignupBody, workspace: Workspace = Depends(get_workspace)):
    """Register an account and log it in."""
    try:
        user = workspace.identity.signup(body.email, body.password, body.name)
    except DuplicateAccount as e:
        raise HTTPException(409, str(e))
    except DisposableEmail as e:
        raise HTTPException(422, str(e))
    return user


@router.post("/auth/login")
async def login(body: LoginBody, workspace: Workspace = Depends(get_workspace)):
    """Log in with email and password."""
    try:
        return workspace.identity.login(body.email, body.password)
    except InvalidCredentials as e:
        raise HTTPException(401, str(e))


@router.post("/auth/logout")
async def logout(workspace: Workspace = Depends(get_workspace)):
    """End the current session. The account is kept."""
    workspace.identity.logout()
    return {"ok": True}


@router.get("/auth/me")
async def me(workspace: Workspace = Depends(get_workspace)):
    """Return the logged-in user."""
    user = workspace.identity.user
    if user is None:
        raise HTTPException(401, "Not logged in")
    return user
