from __future__ import annotations

import json
import logging
from typing import Any, Iterable, Mapping
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from verify_woo.services.sms import SmsGateway

LOGGER = logging.getLogger(__name__)

API_PATH = "{protocol}://api.kavenegar.com/v1/{api_key}/{base}/{method}.json/"
CLIENT_VERSION = "1.2.2"
REQUEST_TIMEOUT_SECONDS = 45


def _join(value: str | Iterable[str] | None) -> str | None:
    if value is None or isinstance(value, str):
        return value
    return ",".join(str(item) for item in value)


def _drop_empty(params: Mapping[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in params.items() if value not in (None, "", 0)}


class KavenegarHttpClient:
    """Thin client for the Kavenegar REST API.

    Every call returns the ``entries`` payload of a successful response, or
    ``None`` when the transport, the HTTP status, the body, or the provider
    status indicates a failure. Failures are logged, never raised.
    """

    def __init__(self, api_key: str, insecure: bool = False) -> None:
        if not api_key or not api_key.strip():
            raise ValueError("Kavenegar API key is empty")
        self._api_key = api_key.strip()
        self._insecure = bool(insecure)

    def get_path(self, method: str, base: str = "sms") -> str:
        protocol = "http" if self._insecure else "https"
        return API_PATH.format(
            protocol=protocol, api_key=self._api_key, base=base, method=method
        )

    def execute(self, url: str, data: Mapping[str, Any] | None = None) -> Any:
        payload = urlencode(data or {}).encode("utf-8")
        request = Request(
            url,
            data=payload,
            headers={
                "Accept": "application/json",
                "Content-Type": "application/x-www-form-urlencoded; charset=utf-8",
                "User-Agent": f"VerifyWoo/Kavenegar-Python-Client/{CLIENT_VERSION}",
            },
            method="POST",
        )
        receptor = (data or {}).get("receptor")
        try:
            with urlopen(request, timeout=REQUEST_TIMEOUT_SECONDS) as response:
                status_code = response.status
                body = response.read().decode("utf-8", errors="replace")
        except HTTPError as exc:
            error_body = exc.read().decode("utf-8", errors="replace")
            LOGGER.error(
                "Kavenegar API: HTTP status %s receptor=%s response=%s",
                exc.code,
                receptor,
                error_body,
            )
            return None
        except (URLError, TimeoutError, OSError) as exc:
            LOGGER.error("Kavenegar HTTP error receptor=%s: %s", receptor, exc)
            return None

        try:
            json_response = json.loads(body)
        except ValueError:
            json_response = None

        result = json_response.get("return") if isinstance(json_response, dict) else None
        if status_code != 200 or not isinstance(result, dict):
            LOGGER.error(
                "Kavenegar API: HTTP status %s or invalid JSON response receptor=%s response=%s",
                status_code,
                receptor,
                body,
            )
            return None

        try:
            api_status = int(result.get("status", 0))
        except (TypeError, ValueError):
            api_status = 0
        if api_status != 200:
            LOGGER.error(
                "Kavenegar API error: %s (status: %s) receptor=%s",
                result.get("message") or "Unknown Kavenegar API error.",
                api_status,
                receptor,
            )
            return None

        return json_response.get("entries")

    def send_sms(
        self,
        sender: str,
        receptor: str | Iterable[str],
        message: str,
        date: int | None = None,
        type: int | None = None,
        localid: str | Iterable[str] | None = None,
    ) -> Any:
        params = {
            "receptor": _join(receptor),
            "sender": sender,
            "message": message,
            "date": date,
            "type": type,
            "localid": _join(localid),
        }
        return self.execute(self.get_path("send"), _drop_empty(params))

    def verify_lookup(
        self,
        receptor: str,
        template: str,
        token: str,
        token2: str = "",
        token3: str = "",
        type: str = "sms",
        token10: str = "",
        token20: str = "",
    ) -> Any:
        params = {
            "receptor": receptor,
            "token": token,
            "token2": token2,
            "token3": token3,
            "template": template,
            "type": type,
            "token10": token10,
            "token20": token20,
        }
        return self.execute(self.get_path("lookup", "verify"), _drop_empty(params))


class KavenegarDriver(SmsGateway):
    name = "kavenegar"

    def __init__(
        self,
        credentials: Mapping[str, Any],
        client: KavenegarHttpClient | None = None,
    ) -> None:
        api_key = str(credentials.get("api_key") or "")
        sender = str(credentials.get("sender") or "")
        if not sender.strip():
            LOGGER.warning("Kavenegar sender number is missing in settings")
        self._sender = sender.strip()
        self._client = client or KavenegarHttpClient(
            api_key, bool(credentials.get("insecure", False))
        )

    def send(
        self, to: str, message: str, options: Mapping[str, Any] | None = None
    ) -> bool:
        options = options or {}
        try:
            response = self._client.send_sms(
                self._sender,
                to,
                message,
                date=options.get("date"),
                type=options.get("type"),
                localid=options.get("localid"),
            )
        except Exception:
            LOGGER.exception("Unexpected error during Kavenegar SMS sending to=%s", to)
            return False
        if not response:
            LOGGER.error("Kavenegar send SMS: unexpected empty response to=%s", to)
            return False
        return True

    def send_by_pattern(
        self,
        to: str,
        pattern: str,
        data: Mapping[str, Any] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> bool:
        data = data or {}
        try:
            response = self._client.verify_lookup(
                to,
                pattern,
                str(data.get("token", "")),
                token2=str(data.get("token2", "")),
                token3=str(data.get("token3", "")),
                type=str(data.get("type") or "sms"),
                token10=str(data.get("token10", "")),
                token20=str(data.get("token20", "")),
            )
        except Exception:
            LOGGER.exception(
                "Unexpected error during Kavenegar pattern SMS sending to=%s", to
            )
            return False
        if not response:
            LOGGER.error(
                "Kavenegar send by pattern: unexpected empty response to=%s pattern=%s",
                to,
                pattern,
            )
            return False
        return True
