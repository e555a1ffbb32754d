from typing import Any

import httpx

from underwriter.services.exceptions import ServiceError


class JsonServiceClient:
    """POSTs JSON to one collaborator endpoint with bearer authentication."""

    error_class: type[ServiceError] = ServiceError

    def __init__(
        self,
        *,
        url: str,
        api_key: str,
        timeout_seconds: int,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._url = url
        headers = {"Accept": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = httpx.Client(
            headers=headers,
            timeout=timeout_seconds,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def post(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Send `payload` and return the decoded JSON object.

        Raises:
            ServiceError subclass: on network errors, non-2xx answers or
                bodies that are not a JSON object.
        """
        try:
            response = self._client.post(self._url, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise self.error_class(
                f"{self._url} answered {exc.response.status_code}: {exc.response.text[:200]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise self.error_class(f"{self._url} unreachable: {exc}") from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise self.error_class(f"{self._url} returned invalid JSON: {exc}") from exc
        if not isinstance(body, dict):
            raise self.error_class(f"{self._url} returned a non-object JSON body")
        return body
