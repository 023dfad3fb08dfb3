"""Deploy Trigger: starts exactly one deploy for a service."""

from typing import Protocol

from pydantic import BaseModel, ConfigDict

from render_deploy.errors import ConfigurationError
from render_deploy.logging_config import get_logger
from render_deploy.schemas import Deploy, DeployHandle, Service

logger = get_logger(__name__)


class DeployCreator(Protocol):
    async def resolve_service(self, ref: str) -> Service: ...

    async def trigger_deploy(
        self, service_id: str, commit_id: str | None = None, clear_cache: bool = False
    ) -> Deploy: ...


class TriggerResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    service: Service
    deploy: Deploy
    handle: DeployHandle


class DeployTrigger:
    """Resolves a service reference and creates one deploy for it.

    Creating a deploy is not idempotent, so it is never retried here. Any
    :class:`~render_deploy.errors.RenderAPIError` propagates to the caller.
    """

    def __init__(self, client: DeployCreator):
        self.client = client

    async def resolve(self, service: str) -> Service:
        if not service or not service.strip():
            raise ConfigurationError("Service name must not be empty")
        return await self.client.resolve_service(service.strip())

    async def trigger(
        self,
        service: str | Service,
        commit: str | None = None,
        clear_cache: bool = False,
    ) -> TriggerResult:
        """Start a deploy of ``service``, at ``commit`` if given.

        ``commit`` is passed through verbatim; the platform validates it.
        """
        if isinstance(service, Service):
            resolved = service
        else:
            resolved = await self.resolve(service)

        deploy = await self.client.trigger_deploy(
            resolved.id, commit_id=commit, clear_cache=clear_cache
        )
        handle = DeployHandle(service_id=resolved.id, deploy_id=deploy.id)
        logger.info(
            "deploy_triggered",
            service_id=resolved.id,
            service_name=resolved.name,
            deploy_id=deploy.id,
            commit=commit,
            status=deploy.status,
        )
        return TriggerResult(service=resolved, deploy=deploy, handle=handle)
