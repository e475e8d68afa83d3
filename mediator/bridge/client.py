"""
Broker Client - agent-side HTTP access to the mediation endpoints.

Uses curl_cffi AsyncSession for native non-blocking I/O. No retries: every
failure surfaces to the caller as a MediatorError.
"""

from typing import Any

from curl_cffi.requests import AsyncSession, RequestsError
from pydantic import ValidationError as PydanticValidationError

from mediator.bridge.schemas import (
    Decision,
    MediationRequest,
    MediationRequestAdapter,
    RequestKind,
    RequestStatus,
)
from mediator.core.errors import NotFoundError, TransportError, ValidationError
from mediator.core.logger import logger

DEFAULT_HTTP_TIMEOUT_SECONDS = 30


class BrokerClient:
    """
    Thin client for POST /mediate/notify, GET /mediate and POST /mediate/{id}/decide.

    Status mapping: 400 -> ValidationError, 404 -> NotFoundError,
    anything else non-2xx (and any network error) -> TransportError.
    """

    def __init__(
        self,
        base_url: str,
        session: AsyncSession | None = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "BrokerClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _get_session(self) -> AsyncSession:
        if self._session is None:
            self._session = AsyncSession()
        return self._session

    async def close(self) -> None:
        """Close the underlying session if this client created it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}{path}"
        session = self._get_session()
        try:
            response = await session.request(
                method,
                url,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
                **kwargs,
            )
        except RequestsError as e:
            logger.error(f"{method} {url} failed: {e}")
            raise TransportError(f"Broker unreachable ({method} {path}): {e}") from e

        if response.status_code == 400:
            raise ValidationError(self._error_message(response))
        if response.status_code == 404:
            raise NotFoundError(self._error_message(response))
        if not 200 <= response.status_code < 300:
            logger.error(f"{method} {url} returned {response.status_code}")
            raise TransportError(
                f"Broker returned {response.status_code} for {method} {path}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"Broker returned a non-JSON body for {method} {path}") from e

    @staticmethod
    def _error_message(response: Any) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict) and error.get("message"):
                return error["message"]
            if body.get("detail"):
                return str(body["detail"])
        return f"HTTP {response.status_code}"

    async def notify(
        self, kind: RequestKind | str, payload: dict[str, Any], correlation_id: str
    ) -> str:
        """
        Create a mediation request.

        Returns:
            Request id assigned by the broker
        """
        body = await self._request(
            "POST",
            "/mediate/notify",
            json={
                "kind": RequestKind(kind).value,
                "payload": payload,
                "correlationId": correlation_id,
            },
        )
        request_id = body.get("id") if isinstance(body, dict) else None
        if not request_id:
            raise TransportError("Broker notify response carried no id")
        return request_id

    async def list_requests(
        self, correlation_id: str, status: RequestStatus | str | None = None
    ) -> list[MediationRequest]:
        """List requests of one run, optionally only those with a given status."""
        params = {"correlationId": correlation_id}
        if status is not None:
            params["status"] = RequestStatus(status).value
        body = await self._request("GET", "/mediate", params=params)
        items = body.get("requests") if isinstance(body, dict) else None
        if not isinstance(items, list):
            raise TransportError("Broker list response carried no requests array")
        try:
            return [MediationRequestAdapter.validate_python(item) for item in items]
        except PydanticValidationError as e:
            raise TransportError(f"Broker returned a malformed mediation request: {e}") from e

    async def decide(self, request_id: str, decision: Decision | dict[str, Any]) -> None:
        if not isinstance(decision, dict):
            decision = decision.to_wire()
        await self._request("POST", f"/mediate/{request_id}/decide", json=decision)
