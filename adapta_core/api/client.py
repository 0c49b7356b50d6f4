"""
Remote API Client
Thin requests wrapper over the adaptations REST API: timeout, safe JSON
parsing, a normalized error shape and per-entity CRUD helpers.
"""
from __future__ import annotations
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import requests

from adapta_core.config import AppConfig, DEFAULT_API_URL, DEFAULT_TIMEOUT
from adapta_core.errors import (
    EnvelopeShapeError,
    HttpError,
    NetworkError,
    NotFoundError,
    RequestTimeoutError,
)
from adapta_core.models import Entity

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": "application/json"}


@dataclass
class APIConfig:
    """Configuration for the API connection"""
    base_url: str = DEFAULT_API_URL
    timeout: float = DEFAULT_TIMEOUT
    headers: Optional[Dict[str, str]] = None

    @classmethod
    def from_app_config(cls, config: AppConfig) -> APIConfig:
        return cls(base_url=config.api_url, timeout=config.request_timeout)


def parse_body(text: str) -> Any:
    """JSON when parseable, the raw text otherwise, None for an empty body."""
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text


def normalize_list(payload: Any, key: str) -> List[Any]:
    """
    Unwrap a list payload.

    Accepted shapes:
        - bare list:            [...]
        - value envelope:       {"value": [...]}
        - named envelope:       {<key>: [...]}
        - empty body:           None

    Raises:
        EnvelopeShapeError: For any other shape
    """
    if payload is None:
        return []
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for field in ("value", key):
            if isinstance(payload.get(field), list):
                return payload[field]
    raise EnvelopeShapeError(
        f"Unrecognized list envelope for '{key}': {type(payload).__name__}",
        accepted=["list", "{value: [...]}", f"{{{key}: [...]}}", "empty"],
        body=payload,
    )


class RemoteApiClient:
    """
    Client for the curricular adaptations API.

    Usage:
        client = RemoteApiClient(APIConfig(base_url="https://api.example.com"))
        students = client.list_students()
        client.update_adaptation(student_id, adaptation_id, {"description": "..."})
    """

    def __init__(self, config: Optional[APIConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or APIConfig()
        self.session = session or requests.Session()

        if self.config.headers:
            self.session.headers.update(self.config.headers)

    # =========================================================================
    # TRANSPORT
    # =========================================================================

    def url_for(self, path: str) -> str:
        return f"{self.config.base_url.rstrip('/')}/{path.lstrip('/')}"

    def request(
        self,
        path: str,
        method: str = "GET",
        params: Optional[Dict[str, Any]] = None,
        json_body: Any = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Make an HTTP request and return the parsed body.

        Args:
            path: API path (appended to base_url)
            method: HTTP method
            params: Query parameters
            json_body: Request body, sent as JSON
            headers: Extra headers for this call
            timeout: Seconds before the call is abandoned (defaults to config.timeout)

        Raises:
            RequestTimeoutError: Deadline exceeded (status 408)
            NotFoundError: 404 response
            HttpError: Any other non-2xx response
            NetworkError: No response at all
        """
        url = self.url_for(path)
        merged_headers = dict(JSON_HEADERS) if json_body is not None else {}
        merged_headers.update(headers or {})

        try:
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=json_body,
                headers=merged_headers or None,
                timeout=timeout if timeout is not None else self.config.timeout,
            )
        except requests.exceptions.Timeout:
            raise RequestTimeoutError("Tempo de requisição esgotado", url=url)
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"API request failed: {e}", url=url)

        body = parse_body(response.text)

        if not response.ok:
            message = None
            if isinstance(body, dict):
                message = body.get("error") or body.get("message")
            message = str(message or response.reason or "Erro na requisição")
            error_cls = NotFoundError if response.status_code == 404 else HttpError
            raise error_cls(message, status=response.status_code, body=body, url=url)

        logger.debug(f"{method} {url} -> {response.status_code}")
        return body

    def _list(self, path: str, key: str, params: Optional[Dict[str, Any]] = None) -> List[Any]:
        try:
            payload = self.request(path, params=params)
        except NotFoundError:
            return []
        return normalize_list(payload, key)

    def _with_nested_fallback(
        self,
        entity: Entity,
        parent_id: Any,
        record_id: Any,
        call: Callable[[str], Any],
    ) -> Any:
        """Try ``/{entity}/{id}``; on 404 retry ``/{entity}/{parent}/{id}``."""
        try:
            return call(f"{entity.value}/{record_id}")
        except NotFoundError:
            logger.debug(f"{entity.value}/{record_id} not found, trying nested path")
            return call(f"{entity.value}/{parent_id}/{record_id}")

    # =========================================================================
    # AUTH
    # =========================================================================

    def authenticate(self, email: str, password: str) -> Any:
        return self.request("auth", method="POST", json_body={"email": email, "password": password})

    def get_me(self, token: str) -> Any:
        return self.request("me", headers={"Authorization": f"Bearer {token}"})

    def list_users(self, email: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {"email": email} if email else None
        return self._list("users", "users", params=params)

    # =========================================================================
    # STUDENTS
    # =========================================================================

    def list_students(self) -> List[Dict[str, Any]]:
        return self._list("students", "students")

    def create_student(self, student: Dict[str, Any]) -> Any:
        return self.request("students", method="POST", json_body=student)

    def update_student(self, student_id: Any, updates: Dict[str, Any]) -> Any:
        return self.request(f"students/{student_id}", method="PUT", json_body=updates)

    def delete_student(self, student_id: Any) -> Any:
        return self.request(f"students/{student_id}", method="DELETE")

    # =========================================================================
    # ADAPTATIONS
    # =========================================================================

    def list_adaptations(self, student_id: Any) -> List[Dict[str, Any]]:
        return self._list(f"adaptations/{student_id}", "adaptations")

    def create_adaptation(self, adaptation: Dict[str, Any]) -> Any:
        return self.request("adaptations", method="POST", json_body=adaptation)

    def update_adaptation(self, student_id: Any, adaptation_id: Any, updates: Dict[str, Any]) -> Any:
        return self.update(Entity.ADAPTATIONS, adaptation_id, updates, parent_id=student_id)

    def delete_adaptation(self, student_id: Any, adaptation_id: Any) -> Any:
        return self.delete(Entity.ADAPTATIONS, adaptation_id, parent_id=student_id)

    # =========================================================================
    # REPORTS
    # =========================================================================

    def list_reports(self, student_id: Any) -> List[Dict[str, Any]]:
        return self._list(f"reports/{student_id}", "reports")

    def get_student_report(self, student_id: Any) -> Any:
        """Raw body of the aggregate endpoint; shape varies between deployments."""
        return self.request(f"reports/{student_id}")

    def create_report(self, report: Dict[str, Any]) -> Any:
        return self.request("reports", method="POST", json_body=report)

    def update_report(self, student_id: Any, report_id: Any, updates: Dict[str, Any]) -> Any:
        return self.update(Entity.REPORTS, report_id, updates, parent_id=student_id)

    def delete_report(self, student_id: Any, report_id: Any) -> Any:
        return self.delete(Entity.REPORTS, report_id, parent_id=student_id)

    # =========================================================================
    # GENERIC DISPATCH
    # =========================================================================

    def create(self, entity: Entity, payload: Dict[str, Any]) -> Any:
        return self.request(Entity(entity).value, method="POST", json_body=payload)

    def update(self, entity: Entity, record_id: Any, updates: Dict[str, Any], parent_id: Any = None) -> Any:
        entity = Entity(entity)
        if entity is Entity.STUDENTS or parent_id in (None, ""):
            return self.request(f"{entity.value}/{record_id}", method="PUT", json_body=updates)
        return self._with_nested_fallback(
            entity, parent_id, record_id,
            lambda path: self.request(path, method="PUT", json_body=updates),
        )

    def delete(self, entity: Entity, record_id: Any, parent_id: Any = None) -> Any:
        entity = Entity(entity)
        if entity is Entity.STUDENTS or parent_id in (None, ""):
            return self.request(f"{entity.value}/{record_id}", method="DELETE")
        return self._with_nested_fallback(
            entity, parent_id, record_id,
            lambda path: self.request(path, method="DELETE"),
        )

    def test_connection(self) -> Dict[str, Any]:
        """
        Check that the API answers.

        Returns:
            Dict with status and message
        """
        try:
            students = self.list_students()
            return {
                "status": "success",
                "message": f"Connected to {self.config.base_url}",
                "students": len(students),
            }
        except Exception as e:
            return {
                "status": "error",
                "message": f"Connection failed: {e}",
            }
