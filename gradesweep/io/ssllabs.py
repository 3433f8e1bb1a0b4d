# gradesweep/io/ssllabs.py

from __future__ import annotations

import logging

import requests

from gradesweep.constants import API_URL, REQUEST_TIMEOUT, USER_AGENT
from gradesweep.models import AnalyzeInfo, AnalyzeParams, ApiInfo, AssessmentStatus

LOG = logging.getLogger(__name__)

_STATUS_HINTS = {
    429: "too many concurrent assessments, slow down",
    503: "service is not available (maintenance)",
    529: "service is overloaded, try again later",
}


class SSLLabsError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RequestError(SSLLabsError):
    """Transport-level failure: connection refused, timeout, bad payload."""


class APIError(SSLLabsError):
    """The service answered, but with an error."""


def _flag(value: bool) -> str:
    return "on" if value else "off"


class SSLLabsClient:
    def __init__(
        self,
        email: str,
        *,
        session: requests.Session | None = None,
        base_url: str = API_URL,
        timeout: float = REQUEST_TIMEOUT,
    ):
        self.email = email
        self.base_url = base_url.rstrip("/") + "/"
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT, "email": email})

    def _request(self, method: str, call: str, **kwargs) -> dict:
        url = self.base_url + call
        LOG.debug("%s %s %s", method, url, kwargs.get("params") or "")

        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise RequestError(f"request to {call} failed: {exc}") from exc

        try:
            payload = resp.json()
        except ValueError:
            payload = None

        if resp.status_code != 200:
            raise APIError(
                _error_message(resp.status_code, payload), status_code=resp.status_code
            )

        if not isinstance(payload, dict):
            raise RequestError(f"{call} returned malformed response", resp.status_code)

        return payload

    def info(self) -> ApiInfo:
        return ApiInfo.from_api(self._request("GET", "info"))

    def analyze(self, host: str, params: AnalyzeParams) -> "Analysis":
        query = {
            "host": host,
            "publish": _flag(params.public),
            "ignoreMismatch": _flag(params.ignore_mismatch),
        }
        if params.start_new:
            query["startNew"] = "on"
        elif params.from_cache:
            query["fromCache"] = "on"

        data = self._request("GET", "analyze", params=query)
        LOG.debug("%s submitted (status %s)", host, data.get("status"))
        return Analysis(self, host, params, AnalyzeInfo.from_api(data))

    def register(
        self, first_name: str, last_name: str, email: str, organization: str
    ) -> str:
        data = self._request(
            "POST",
            "register",
            json={
                "firstName": first_name,
                "lastName": last_name,
                "email": email,
                "organization": organization,
            },
        )
        return data.get("message", "")


class Analysis:
    """Handle of a submitted assessment, polled until it settles."""

    def __init__(
        self,
        client: SSLLabsClient,
        host: str,
        params: AnalyzeParams,
        initial: AnalyzeInfo | None = None,
    ):
        self.client = client
        self.host = host
        self.params = params
        self.last = initial
        self._full: AnalyzeInfo | None = None

    def info(self, detailed: bool = False, from_cache: bool = True) -> AnalyzeInfo:
        if detailed and self._full is not None:
            return self._full

        query = {
            "host": self.host,
            "publish": _flag(self.params.public),
            "ignoreMismatch": _flag(self.params.ignore_mismatch),
        }
        if from_cache:
            query["fromCache"] = "on"
        if detailed:
            query["all"] = "done"

        snapshot = AnalyzeInfo.from_api(
            self.client._request("GET", "analyze", params=query)
        )
        self.last = snapshot

        if detailed and snapshot.status is AssessmentStatus.READY:
            self._full = snapshot

        return snapshot


def _error_message(status_code: int, payload) -> str:
    if isinstance(payload, dict) and payload.get("errors"):
        parts = []
        for err in payload["errors"]:
            field = err.get("field")
            msg = err.get("message", "unknown error")
            parts.append(f"{field}: {msg}" if field else msg)
        return "; ".join(parts)

    hint = _STATUS_HINTS.get(status_code)
    if hint:
        return f"API returned {status_code}: {hint}"
    return f"API returned non-ok status code {status_code}"
