from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from ..core.constants import REMOTE_TIMEOUT_SECONDS
from ..core.enums import ChangeKind
from ..core.exceptions import TransportError, ValidationError
from .model import ChangeBatch, PendingChange, PushOutcome, SyncRecord
from .payload import employee_from_payload, entry_from_payload
from .remote import RemoteStore

logger = logging.getLogger(__name__)


class RestRemoteStore(RemoteStore):
    """RemoteStore over a small JSON/HTTP API.

    PUT  {base}/employees/{id}
    PUT  {base}/time-entries/{employee_id}/{YYYY-MM-DD}
         200/201 accepted, 409 {"current": {...}} refused
    GET  {base}/changes?since=N -> {"employees": [...], "entries": [...], "cursor": N}
    """

    def __init__(
        self,
        base_url: str,
        *,
        api_token: Optional[str] = None,
        timeout: float = REMOTE_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        if not base_url:
            raise ValueError("base_url is required")
        self._base_url = base_url.rstrip("/")
        self._timeout = float(timeout)
        self._session = session or requests.Session()
        self._headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if api_token:
            self._headers["Authorization"] = f"Bearer {api_token}"

    def _url_for(self, change: PendingChange) -> str:
        if change.kind == ChangeKind.EMPLOYEE:
            return f"{self._base_url}/employees/{change.employee_id}"
        return f"{self._base_url}/time-entries/{change.employee_id}/{change.work_date.isoformat()}"

    @staticmethod
    def _decode(kind: ChangeKind, data: dict[str, Any]) -> SyncRecord:
        if kind == ChangeKind.EMPLOYEE:
            return employee_from_payload(data)
        return entry_from_payload(data)

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            resp = self._session.request(method, url, headers=self._headers, timeout=self._timeout, **kwargs)
        except requests.Timeout as exc:
            raise TransportError(f"Remote call timed out: {method} {url}") from exc
        except requests.ConnectionError as exc:
            raise TransportError(f"Remote store unavailable: {exc}") from exc
        except requests.RequestException as exc:
            raise TransportError(f"Remote call failed: {exc}") from exc

        if resp.status_code >= 500:
            raise TransportError(
                f"Remote store error {resp.status_code} for {method} {url}", status_code=resp.status_code
            )
        return resp

    def push(self, change: PendingChange) -> PushOutcome:
        url = self._url_for(change)
        resp = self._request("PUT", url, json=change.payload)

        if resp.status_code in (200, 201, 204):
            return PushOutcome(accepted=True)
        if resp.status_code == 409:
            try:
                current = (resp.json() or {}).get("current")
                record = self._decode(change.kind, current) if current else None
            except (KeyError, TypeError, ValueError, ValidationError) as exc:
                raise TransportError(f"Malformed conflict body from {url}: {exc}", retryable=False) from exc
            logger.info("remote refused %s revision=%s", url, change.revision)
            return PushOutcome(accepted=False, current=record)
        raise TransportError(
            f"Remote store rejected {url} with {resp.status_code}",
            retryable=False,
            status_code=resp.status_code,
        )

    def pull(self, since: int) -> ChangeBatch:
        url = f"{self._base_url}/changes"
        resp = self._request("GET", url, params={"since": int(since)})
        if resp.status_code != 200:
            raise TransportError(
                f"Remote store rejected {url} with {resp.status_code}",
                retryable=False,
                status_code=resp.status_code,
            )
        try:
            body = resp.json()
            return ChangeBatch(
                employees=[employee_from_payload(r) for r in body.get("employees", [])],
                entries=[entry_from_payload(r) for r in body.get("entries", [])],
                cursor=int(body.get("cursor", since)),
            )
        except (KeyError, TypeError, ValueError, ValidationError) as exc:
            raise TransportError(f"Malformed change batch from {url}: {exc}", retryable=False) from exc
