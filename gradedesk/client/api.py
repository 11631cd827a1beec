"""
HTTP adapter between the grading core and the grading service.

`GradingApi` is the only place that knows paths, JSON shapes and status
codes. It turns every non-2xx response and every transport failure into a
:mod:`gradedesk.client.errors` exception and never retries.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from gradedesk.client.credentials import CredentialProvider
from gradedesk.client.errors import (
    AuthError,
    GradingError,
    NetworkError,
    NotFoundError,
    ValidationError,
)
from gradedesk.core.config import BACKEND_URL, REQUEST_TIMEOUT_SECONDS
from gradedesk.schemas.grading import AcceptingRead, AcceptingUpdate, BulkReturnRequest
from gradedesk.schemas.roster import RosterSnapshot
from gradedesk.schemas.submission import GradeUpdate

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and "detail" in body:
        return str(body["detail"])
    return str(body)


def error_for_response(response: httpx.Response) -> GradingError:
    code = response.status_code
    detail = _error_detail(response)

    if code in (401, 403):
        return AuthError(detail, code)
    if code == 404:
        return NotFoundError(detail, code)
    if code in (400, 409, 422):
        return ValidationError(detail, code)
    if code >= 500:
        return NetworkError(detail, code)
    return GradingError(detail, code)


def _parse(model: type[M], body: Any, what: str) -> M:
    try:
        return model.model_validate(body)
    except PydanticValidationError as e:
        raise ValidationError(f"Malformed {what}: {e}") from e


class GradingApi:
    """
    Thin client for the four grading endpoints.

    Args:
        http: an ``httpx.Client`` whose ``base_url`` points at the service.
        credentials: called before every request; a missing token fails with
            `AuthError` without sending anything.
    """

    def __init__(self, http: httpx.Client, credentials: CredentialProvider):
        self._http = http
        self._credentials = credentials

    @classmethod
    def from_config(cls, credentials: CredentialProvider) -> GradingApi:
        http = httpx.Client(base_url=BACKEND_URL, timeout=REQUEST_TIMEOUT_SECONDS)
        return cls(http, credentials)

    # === endpoints ===

    def get_stats(self, item_id: int) -> RosterSnapshot:
        body = self._request("GET", f"/grading/item/{item_id}/stats")
        return _parse(RosterSnapshot, body, f"roster for item {item_id}")

    def set_accepting(self, item_id: int, accepting: bool) -> bool:
        payload = AcceptingUpdate(accepting=accepting)
        body = self._request(
            "PATCH",
            f"/grading/item/{item_id}/accepting",
            json=payload.model_dump(by_alias=True),
        )
        return _parse(AcceptingRead, body, f"accepting flag for item {item_id}").accepting

    def set_grade(self, submission_id: int, grade: int | None) -> None:
        # the echoed submission is not used; a 2xx is the acknowledgement
        payload = GradeUpdate(grade=grade)
        self._request(
            "PATCH",
            f"/submission/{submission_id}/grade",
            json=payload.model_dump(by_alias=True),
        )

    def mark_returned(self, item_id: int, submission_ids: Sequence[int]) -> list[int]:
        payload = BulkReturnRequest(submission_ids=list(submission_ids))
        body = self._request(
            "POST",
            f"/grading/item/{item_id}/return",
            json=payload.model_dump(by_alias=True),
        )
        if not isinstance(body, list):
            raise ValidationError(f"Malformed return acknowledgement for item {item_id}")
        try:
            return [int(i) for i in body]
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Malformed return acknowledgement for item {item_id}: {e}") from e

    # === plumbing ===

    def _headers(self) -> dict[str, str]:
        token = self._credentials()
        if not token:
            raise AuthError("Not signed in")
        return {"Authorization": f"Bearer {token}"}

    def _request(self, method: str, path: str, json: Any = None) -> Any:
        headers = self._headers()
        logger.debug("%s %s", method, path)

        try:
            response = self._http.request(method, path, json=json, headers=headers)
        except httpx.TransportError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise NetworkError(f"Could not reach grading service: {e}") from e

        if response.is_error:
            error = error_for_response(response)
            logger.warning("%s %s -> %s: %s", method, path, response.status_code, error.detail)
            raise error

        try:
            return response.json()
        except ValueError as e:
            raise NetworkError(f"Unreadable response from {path}") from e
