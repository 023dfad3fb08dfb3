"""Client for the Render REST API.

The caller owns the ``httpx.AsyncClient`` and passes it in, so one connection
pool is shared by every request of a run and tests can substitute transports.
"""

from http import HTTPStatus
from typing import Any

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from render_deploy import __version__
from render_deploy.errors import (
    NotFoundError,
    TransportError,
    UnauthorizedError,
    UnexpectedResponseError,
)
from render_deploy.logging_config import get_logger
from render_deploy.schemas import Deploy, DeployListItem, Service, ServiceListItem

logger = get_logger(__name__)

DEFAULT_API_URL = "https://api.render.com/v1"
SERVICE_ID_PREFIX = "srv-"

_SERVICE_LIST = TypeAdapter(list[ServiceListItem])
_DEPLOY_LIST = TypeAdapter(list[DeployListItem])


def build_http_client(
    api_key: str,
    base_url: str = DEFAULT_API_URL,
    timeout: float = 30.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create the pooled HTTP client used for all Render calls."""
    return httpx.AsyncClient(
        base_url=base_url,
        headers={
            "Authorization": f"Bearer {api_key}",
            "Accept": "application/json",
            "User-Agent": f"render-deploy/{__version__}",
        },
        timeout=timeout,
        follow_redirects=True,
        transport=transport,
    )


class RenderClient:
    """Typed wrapper over the few Render endpoints needed to deploy."""

    def __init__(self, http_client: httpx.AsyncClient):
        self._client = http_client

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.DecodingError as e:
            logger.debug("render_response_undecodable", method=method, path=path, error=str(e))
            raise UnexpectedResponseError(
                f"{method} {path} returned an undecodable body: {e}"
            ) from e
        except httpx.RequestError as e:
            logger.debug("render_request_transport_error", method=method, path=path, error=str(e))
            raise TransportError(f"{method} {path} failed: {e}") from e

        if resp.status_code in (HTTPStatus.UNAUTHORIZED, HTTPStatus.FORBIDDEN):
            raise UnauthorizedError(
                "Render rejected the API key", status_code=resp.status_code, body=resp.text
            )
        if resp.status_code == HTTPStatus.NOT_FOUND:
            raise NotFoundError(
                f"Not found: {method} {path}", status_code=resp.status_code, body=resp.text
            )
        if resp.is_error:
            raise UnexpectedResponseError(
                f"{method} {path} returned HTTP {resp.status_code}",
                status_code=resp.status_code,
                body=resp.text,
            )

        try:
            return resp.json()
        except ValueError as e:
            raise UnexpectedResponseError(
                f"{method} {path} returned a non-JSON body",
                status_code=resp.status_code,
                body=resp.text,
            ) from e

    @staticmethod
    def _parse(model: type[BaseModel] | TypeAdapter, data: Any, context: str) -> Any:
        try:
            if isinstance(model, TypeAdapter):
                return model.validate_python(data)
            return model.model_validate(data)
        except ValidationError as e:
            logger.debug("render_response_invalid", context=context, errors=e.errors())
            raise UnexpectedResponseError(f"Unexpected {context} response: {e}") from e

    async def get_service(self, service_id: str) -> Service:
        data = await self._request("GET", f"/services/{service_id}")
        return self._parse(Service, data, "service")

    async def find_service_by_name(self, name: str) -> Service | None:
        data = await self._request("GET", "/services", params={"name": name, "limit": 1})
        items = self._parse(_SERVICE_LIST, data, "service list")
        return items[0].service if items else None

    async def resolve_service(self, ref: str) -> Service:
        """Resolve a service ID (``srv-...``) or a service name.

        Raises:
            NotFoundError: If no service matches.
        """
        if ref.startswith(SERVICE_ID_PREFIX):
            return await self.get_service(ref)

        service = await self.find_service_by_name(ref)
        if service is None:
            raise NotFoundError(f"Cannot find a service named {ref}")
        return service

    async def latest_deploy(self, service_id: str) -> Deploy | None:
        data = await self._request(
            "GET", f"/services/{service_id}/deploys", params={"limit": 1}
        )
        items = self._parse(_DEPLOY_LIST, data, "deploy list")
        return items[0].deploy if items else None

    async def trigger_deploy(
        self, service_id: str, commit_id: str | None = None, clear_cache: bool = False
    ) -> Deploy:
        """Create a new deploy. Not idempotent: every call starts a deploy."""
        payload: dict[str, Any] = {"clearCache": "clear" if clear_cache else "do_not_clear"}
        if commit_id is not None:
            payload["commitId"] = commit_id

        data = await self._request("POST", f"/services/{service_id}/deploys", json=payload)
        return self._parse(Deploy, data, "deploy")

    async def get_deploy(self, service_id: str, deploy_id: str) -> Deploy:
        data = await self._request("GET", f"/services/{service_id}/deploys/{deploy_id}")
        return self._parse(Deploy, data, "deploy")

