import json

import httpx
import pytest
import pytest_asyncio
import respx

from render_deploy.client import RenderClient, build_http_client
from render_deploy.errors import (
    NotFoundError,
    TransportError,
    UnauthorizedError,
    UnexpectedResponseError,
)
from tests.fakes import API_HOST, DEPLOY, deploy_payload, service_payload

SERVICE_ID = "srv-cs1web"
DEPLOY_ID = DEPLOY["id"]


@pytest_asyncio.fixture
async def http_client():
    client = build_http_client("rnd_test_key")
    yield client
    await client.aclose()


@pytest.fixture
def client(http_client) -> RenderClient:
    return RenderClient(http_client)


@pytest.mark.asyncio
async def test_requests_carry_bearer_key(client):
    async with respx.mock(base_url=API_HOST) as respx_mock:
        route = respx_mock.get(path=f"/v1/services/{SERVICE_ID}").mock(
            return_value=httpx.Response(httpx.codes.OK, json=service_payload())
        )

        await client.get_service(SERVICE_ID)

        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer rnd_test_key"
        assert request.headers["Accept"] == "application/json"
        assert request.headers["User-Agent"].startswith("render-deploy/")


@pytest.mark.asyncio
async def test_resolve_service_by_name(client):
    async with respx.mock(base_url=API_HOST) as respx_mock:
        route = respx_mock.get(path="/v1/services").mock(
            return_value=httpx.Response(
                httpx.codes.OK, json=[{"cursor": "c1", "service": service_payload()}]
            )
        )

        service = await client.resolve_service("web-api")

        assert service.id == SERVICE_ID
        params = route.calls.last.request.url.params
        assert params["name"] == "web-api"
        assert params["limit"] == "1"


@pytest.mark.asyncio
async def test_resolve_service_by_id_skips_lookup(client):
    async with respx.mock(base_url=API_HOST, assert_all_called=False) as respx_mock:
        list_route = respx_mock.get(path="/v1/services")
        respx_mock.get(path=f"/v1/services/{SERVICE_ID}").mock(
            return_value=httpx.Response(httpx.codes.OK, json=service_payload())
        )

        service = await client.resolve_service(SERVICE_ID)

        assert service.name == "web-api"
        assert not list_route.called


@pytest.mark.asyncio
async def test_resolve_unknown_service_name(client):
    async with respx.mock(base_url=API_HOST) as respx_mock:
        respx_mock.get(path="/v1/services").mock(
            return_value=httpx.Response(httpx.codes.OK, json=[])
        )

        with pytest.raises(NotFoundError, match="nope"):
            await client.resolve_service("nope")


@pytest.mark.asyncio
async def test_trigger_deploy_sends_commit_verbatim(client):
    async with respx.mock(base_url=API_HOST) as respx_mock:
        route = respx_mock.post(path=f"/v1/services/{SERVICE_ID}/deploys").mock(
            return_value=httpx.Response(httpx.codes.CREATED, json=DEPLOY)
        )

        deploy = await client.trigger_deploy(SERVICE_ID, commit_id="abc123")

        assert deploy.id == DEPLOY_ID
        assert route.call_count == 1
        body = json.loads(route.calls.last.request.content)
        assert body == {"clearCache": "do_not_clear", "commitId": "abc123"}


@pytest.mark.asyncio
async def test_trigger_deploy_without_commit(client):
    async with respx.mock(base_url=API_HOST) as respx_mock:
        route = respx_mock.post(path=f"/v1/services/{SERVICE_ID}/deploys").mock(
            return_value=httpx.Response(httpx.codes.CREATED, json=DEPLOY)
        )

        await client.trigger_deploy(SERVICE_ID, clear_cache=True)

        body = json.loads(route.calls.last.request.content)
        assert body == {"clearCache": "clear"}


@pytest.mark.asyncio
async def test_get_deploy(client):
    async with respx.mock(base_url=API_HOST) as respx_mock:
        respx_mock.get(path=f"/v1/services/{SERVICE_ID}/deploys/{DEPLOY_ID}").mock(
            return_value=httpx.Response(httpx.codes.OK, json=deploy_payload(status="live"))
        )

        deploy = await client.get_deploy(SERVICE_ID, DEPLOY_ID)

        assert deploy.status == "live"


@pytest.mark.asyncio
async def test_latest_deploy(client):
    async with respx.mock(base_url=API_HOST) as respx_mock:
        route = respx_mock.get(path=f"/v1/services/{SERVICE_ID}/deploys").mock(
            return_value=httpx.Response(
                httpx.codes.OK, json=[{"cursor": "c1", "deploy": deploy_payload(status="live")}]
            )
        )

        deploy = await client.latest_deploy(SERVICE_ID)

        assert deploy is not None
        assert deploy.status == "live"
        assert route.calls.last.request.url.params["limit"] == "1"


@pytest.mark.asyncio
async def test_latest_deploy_none(client):
    async with respx.mock(base_url=API_HOST) as respx_mock:
        respx_mock.get(path=f"/v1/services/{SERVICE_ID}/deploys").mock(
            return_value=httpx.Response(httpx.codes.OK, json=[])
        )

        assert await client.latest_deploy(SERVICE_ID) is None


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [httpx.codes.UNAUTHORIZED, httpx.codes.FORBIDDEN])
async def test_unauthorized(client, status_code):
    async with respx.mock(base_url=API_HOST) as respx_mock:
        respx_mock.post(path=f"/v1/services/{SERVICE_ID}/deploys").mock(
            return_value=httpx.Response(status_code, json={"message": "unauthorized"})
        )

        with pytest.raises(UnauthorizedError) as exc_info:
            await client.trigger_deploy(SERVICE_ID)

        assert exc_info.value.status_code == status_code


@pytest.mark.asyncio
async def test_not_found(client):
    async with respx.mock(base_url=API_HOST) as respx_mock:
        respx_mock.post(path=f"/v1/services/{SERVICE_ID}/deploys").mock(
            return_value=httpx.Response(httpx.codes.NOT_FOUND, json={"message": "not found"})
        )

        with pytest.raises(NotFoundError):
            await client.trigger_deploy(SERVICE_ID)


@pytest.mark.asyncio
async def test_server_error_is_unexpected_response(client):
    async with respx.mock(base_url=API_HOST) as respx_mock:
        respx_mock.post(path=f"/v1/services/{SERVICE_ID}/deploys").mock(
            return_value=httpx.Response(httpx.codes.SERVICE_UNAVAILABLE, text="upstream down")
        )

        with pytest.raises(UnexpectedResponseError) as exc_info:
            await client.trigger_deploy(SERVICE_ID)

        assert exc_info.value.details["status_code"] == httpx.codes.SERVICE_UNAVAILABLE
        assert exc_info.value.details["body"] == "upstream down"


@pytest.mark.asyncio
async def test_connection_error_is_transport_error(client):
    async with respx.mock(base_url=API_HOST) as respx_mock:
        respx_mock.post(path=f"/v1/services/{SERVICE_ID}/deploys").mock(
            side_effect=httpx.ConnectError("connection refused")
        )

        with pytest.raises(TransportError, match="connection refused"):
            await client.trigger_deploy(SERVICE_ID)


@pytest.mark.asyncio
async def test_timeout_is_transport_error(client):
    async with respx.mock(base_url=API_HOST) as respx_mock:
        respx_mock.get(path=f"/v1/services/{SERVICE_ID}/deploys/{DEPLOY_ID}").mock(
            side_effect=httpx.ReadTimeout("timed out")
        )

        with pytest.raises(TransportError):
            await client.get_deploy(SERVICE_ID, DEPLOY_ID)


@pytest.mark.asyncio
async def test_non_json_body(client):
    async with respx.mock(base_url=API_HOST) as respx_mock:
        respx_mock.post(path=f"/v1/services/{SERVICE_ID}/deploys").mock(
            return_value=httpx.Response(httpx.codes.OK, text="<html>maintenance</html>")
        )

        with pytest.raises(UnexpectedResponseError, match="non-JSON"):
            await client.trigger_deploy(SERVICE_ID)


@pytest.mark.asyncio
async def test_deploy_without_status_is_unexpected_response(client):
    payload = deploy_payload()
    del payload["status"]
    async with respx.mock(base_url=API_HOST) as respx_mock:
        respx_mock.get(path=f"/v1/services/{SERVICE_ID}/deploys/{DEPLOY_ID}").mock(
            return_value=httpx.Response(httpx.codes.OK, json=payload)
        )

        with pytest.raises(UnexpectedResponseError):
            await client.get_deploy(SERVICE_ID, DEPLOY_ID)


@pytest.mark.asyncio
async def test_corrupt_gzip_body_is_unexpected_response(client):
    async with respx.mock(base_url=API_HOST) as respx_mock:
        respx_mock.get(path=f"/v1/services/{SERVICE_ID}/deploys/{DEPLOY_ID}").mock(
            return_value=httpx.Response(
                httpx.codes.OK,
                headers={"Content-Encoding": "gzip"},
                content=b"not gzip at all",
            )
        )

        with pytest.raises(UnexpectedResponseError, match="undecodable"):
            await client.get_deploy(SERVICE_ID, DEPLOY_ID)


@pytest.mark.asyncio
async def test_redirect_loop_is_transport_error(client):
    path = f"/v1/services/{SERVICE_ID}/deploys/{DEPLOY_ID}"
    async with respx.mock(base_url=API_HOST) as respx_mock:
        route = respx_mock.get(path=path).mock(
            return_value=httpx.Response(httpx.codes.FOUND, headers={"Location": path})
        )

        with pytest.raises(TransportError):
            await client.get_deploy(SERVICE_ID, DEPLOY_ID)

        assert route.call_count > 1
