from fastapi import APIRouter, Request, Response, status
from fastapi.responses import RedirectResponse

from verify_woo.config import settings
from verify_woo.services.checkout import checkout_login_redirect
from verify_woo.services.sessions import session_store

router = APIRouter(tags=["checkout"])


@router.get("/checkout")
def checkout(request: Request) -> Response:
    token = request.cookies.get(settings.session_cookie_name)
    logged_in = session_store.get_user_id(token) is not None
    target = checkout_login_redirect(settings, logged_in)
    if target:
        return RedirectResponse(target, status_code=status.HTTP_302_FOUND)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
