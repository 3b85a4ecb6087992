from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

SEND_OTP_ACTION = "verify_woo_send_otp"
CHECK_OTP_ACTION = "verify_woo_check_otp"


class OtpRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_phone: Optional[str] = Field(default=None, max_length=64)
    nonce: Optional[str] = Field(default=None, alias="_nonce", max_length=2048)


class OtpVerifyRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_phone: Optional[str] = Field(default=None, max_length=64)
    otp: Optional[str] = Field(default=None, max_length=16)
    nonce: Optional[str] = Field(default=None, alias="_nonce", max_length=2048)


class AjaxRequest(OtpVerifyRequest):
    action: Literal["verify_woo_send_otp", "verify_woo_check_otp"]


class LoginSuccessData(BaseModel):
    message: str
    redirect: str


class AjaxResponse(BaseModel):
    success: bool
    data: Union[LoginSuccessData, str]
    code: Optional[str] = None
    wait_seconds: Optional[int] = None
    attempts_left: Optional[int] = None


class OtpConfigResponse(BaseModel):
    nonce: str
    expire_time_otp: int
