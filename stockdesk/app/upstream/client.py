from __future__ import annotations

import http.client
import json
from dataclasses import dataclass
from typing import Any, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen


class UpstreamError(RuntimeError):
    """The remote POS API rejected a call or could not be reached."""

    def __init__(self, path: str, message: str, status_code: Optional[int] = None, body: Any = None):
        self.path = path
        self.status_code = status_code
        self.body = body
        prefix = f"HTTP {status_code} {path}" if status_code else path
        super().__init__(f"{prefix}: {message}")

    @property
    def user_message(self) -> str:
        # The POS API reports failures as {"error": "..."}; fall back to the raw text.
        if isinstance(self.body, dict):
            msg = str(self.body.get("error") or self.body.get("message") or "").strip()
            if msg:
                return msg
        return str(self)


def _parse_body(raw: str) -> Any:
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except ValueError:
        return {"raw": raw}


@dataclass(frozen=True)
class ApiClient:
    api_base: str
    token: str = ""
    timeout_s: int = 15

    def _headers(self) -> dict:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "User-Agent": "stockdesk-intake/1.0",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def req_json(self, method: str, path: str, payload: Any | None = None, params: Optional[dict] = None) -> dict:
        url = self.api_base.rstrip("/") + path
        query = {k: v for k, v in (params or {}).items() if v is not None and str(v) != ""}
        if query:
            url += "?" + urlencode(query)
        data = None
        if payload is not None:
            data = json.dumps(payload, default=str).encode("utf-8")
        req = Request(url, data=data, headers=self._headers(), method=method)
        try:
            with urlopen(req, timeout=self.timeout_s) as resp:
                body = resp.read().decode("utf-8", errors="replace")
        except HTTPError as e:
            raw = e.read().decode("utf-8", errors="replace")
            raise UpstreamError(path, raw[:500], status_code=e.code, body=_parse_body(raw)) from None
        except (URLError, TimeoutError, OSError) as e:
            raise UpstreamError(path, f"unreachable ({e})") from None
        except http.client.HTTPException as e:
            # Truncated or malformed responses (IncompleteRead, BadStatusLine).
            raise UpstreamError(path, f"bad response ({e!r})") from None
        parsed = _parse_body(body)
        if not isinstance(parsed, dict):
            return {"items": parsed}
        return parsed

    def get(self, path: str, **params) -> dict:
        return self.req_json("GET", path, params=params)

    def post(self, path: str, payload: Any) -> dict:
        return self.req_json("POST", path, payload=payload)
