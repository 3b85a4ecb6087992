import logging

from fastapi import APIRouter, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse

from verify_woo.config import settings
from verify_woo.schemas.otp import (
    SEND_OTP_ACTION,
    AjaxRequest,
    AjaxResponse,
    LoginSuccessData,
    OtpConfigResponse,
    OtpRequest,
    OtpVerifyRequest,
)
from verify_woo.services.errors import OtpError
from verify_woo.services.otp import otp_service
from verify_woo.services.sessions import session_store
from verify_woo.services.tokens import (
    OTP_NONCE_ACTION,
    TokenError,
    create_nonce,
    verify_nonce,
)

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

LOGIN_SUCCESS_MESSAGE = "Login successful. Redirecting..."


def _session_token(request: Request) -> str | None:
    return request.cookies.get(settings.session_cookie_name)


def _nonce_rejected(request: Request, nonce: str | None) -> JSONResponse | None:
    try:
        verify_nonce(nonce, OTP_NONCE_ACTION, _session_token(request))
    except TokenError as exc:
        LOGGER.info("Rejected OTP action from %s: %s", request.client, exc)
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content={"success": False, "data": "-1"},
        )
    return None


def _failure(exc: OtpError) -> AjaxResponse:
    return AjaxResponse(
        success=False,
        data=exc.message,
        code=exc.code.value,
        wait_seconds=getattr(exc, "wait_seconds", None),
        attempts_left=getattr(exc, "attempts_left", None),
    )


def _send_otp(request: Request, payload: OtpRequest):
    rejected = _nonce_rejected(request, payload.nonce)
    if rejected is not None:
        return rejected
    try:
        issued = otp_service.request_otp(payload.user_phone)
    except OtpError as exc:
        return _failure(exc)
    return AjaxResponse(success=True, data=f"OTP Sent to {issued.phone} Successfully!")


def _check_otp(request: Request, response: Response, payload: OtpVerifyRequest):
    rejected = _nonce_rejected(request, payload.nonce)
    if rejected is not None:
        return rejected
    try:
        outcome = otp_service.login(payload.user_phone, payload.otp)
    except OtpError as exc:
        return _failure(exc)
    response.set_cookie(
        key=settings.session_cookie_name,
        value=outcome.login.session_token,
        max_age=session_store.ttl_seconds,
        httponly=True,
        samesite="lax",
    )
    return AjaxResponse(
        success=True,
        data=LoginSuccessData(message=LOGIN_SUCCESS_MESSAGE, redirect=outcome.redirect_url),
    )


@router.get("/otp/config", response_model=OtpConfigResponse)
def otp_config(request: Request) -> OtpConfigResponse:
    try:
        nonce = create_nonce(OTP_NONCE_ACTION, _session_token(request))
    except TokenError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc
    return OtpConfigResponse(
        nonce=nonce, expire_time_otp=otp_service.expiration_seconds()
    )


@router.post("/otp/request", response_model=AjaxResponse, response_model_exclude_none=True)
def request_otp(request: Request, payload: OtpRequest):
    return _send_otp(request, payload)


@router.post("/otp/verify", response_model=AjaxResponse, response_model_exclude_none=True)
def verify_otp(request: Request, response: Response, payload: OtpVerifyRequest):
    return _check_otp(request, response, payload)


@router.post("/ajax", response_model=AjaxResponse, response_model_exclude_none=True)
def ajax(request: Request, response: Response, payload: AjaxRequest):
    if payload.action == SEND_OTP_ACTION:
        return _send_otp(request, payload)
    return _check_otp(request, response, payload)


@router.post("/logout", response_model=AjaxResponse, response_model_exclude_none=True)
def logout(request: Request, response: Response) -> AjaxResponse:
    token = _session_token(request)
    if token and not session_store.revoke_session(token):
        LOGGER.info("Logout with an unknown or revoked session")
    response.delete_cookie(settings.session_cookie_name)
    return AjaxResponse(success=True, data="Logged out")
