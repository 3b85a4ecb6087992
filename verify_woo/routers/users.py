from fastapi import APIRouter, Depends, HTTPException, Request, status

from verify_woo.config import settings
from verify_woo.schemas.users import AccountResponse
from verify_woo.services.sessions import session_store
from verify_woo.services.users import user_store

router = APIRouter(prefix="/users", tags=["users"])


def get_current_user_id(request: Request) -> int:
    token = request.cookies.get(settings.session_cookie_name)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing session cookie",
        )
    user_id = session_store.get_user_id(token)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session token",
        )
    return user_id


@router.get("/me", response_model=AccountResponse)
def get_me(user_id: int = Depends(get_current_user_id)) -> AccountResponse:
    user = user_store.get_user(user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user
