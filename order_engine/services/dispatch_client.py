# order_engine/services/dispatch_client.py
from dataclasses import dataclass
from typing import Any, Dict

import requests
from requests import RequestException

from order_engine.utils.retry import http_retry
from order_engine.utils.settings import DISPATCH_SERVICE_URL, DISPATCH_TIMEOUT
from order_engine.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class DispatchResult:
    success: bool
    reason: str | None = None
    job_id: str | None = None


class DispatchClient:
    """
    HTTP client for the print/message dispatcher. Transport errors are retried
    here; callers only ever see one DispatchResult per request.
    """

    def __init__(self, base_url: str | None = None, timeout: int = DISPATCH_TIMEOUT):
        self.base_url = (base_url or DISPATCH_SERVICE_URL).rstrip("/")
        self.timeout = timeout

    def _post(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        logger.info(f"DispatchClient POST {url}")

        resp = requests.post(url, json=body, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json() if resp.content else {}

    def print_job(self, printer_id: str | None, payload: Dict[str, Any], title: str, max_retries: int = 2) -> DispatchResult:
        if not printer_id:
            return DispatchResult(success=False, reason="No printer configured for this store")

        body = {"printer_id": printer_id, "title": title, "content": payload}
        try:
            data = http_retry(attempts=max_retries + 1)(self._post)("/print-jobs", body)
        except RequestException as e:
            logger.error(f"Print job '{title}' failed: {e}")
            return DispatchResult(success=False, reason=str(e) or "Print dispatch failed")

        if data.get("success") is False:
            return DispatchResult(success=False, reason=data.get("error") or "Print dispatch failed")
        return DispatchResult(success=True, job_id=str(data["id"]) if data.get("id") is not None else None)

    def send_message(self, phone: str, text: str) -> DispatchResult:
        if not phone:
            return DispatchResult(success=False, reason="Customer has no phone number")

        try:
            data = http_retry()(self._post)("/messages", {"phone": phone, "text": text})
        except RequestException as e:
            logger.error(f"Message to {phone} failed: {e}")
            return DispatchResult(success=False, reason=str(e) or "Message dispatch failed")

        if data.get("success") is False:
            return DispatchResult(success=False, reason=data.get("error") or "Message dispatch failed")
        return DispatchResult(success=True, job_id=str(data["id"]) if data.get("id") is not None else None)
