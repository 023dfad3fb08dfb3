"""Pydantic schemas for Render API responses.

Only the fields render-deploy reads are declared; anything else the API
returns is kept but ignored.

API Documentation: https://api-docs.render.com/reference
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RenderModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class Service(RenderModel):
    """Service from GET /services/{serviceId} or the service list."""

    id: str = Field(..., description="Service ID (srv-...)")
    name: str = Field(..., description="Service name")
    type: str | None = Field(None, description="web_service, background_worker, ...")
    repo: str | None = Field(None, description="Source repository URL")
    branch: str | None = Field(None, description="Branch deployed by default")
    dashboard_url: str | None = Field(None, alias="dashboardUrl")
    auto_deploy: bool = Field(False, alias="autoDeploy")
    created_at: datetime | None = Field(None, alias="createdAt")
    updated_at: datetime | None = Field(None, alias="updatedAt")

    @field_validator("auto_deploy", mode="before")
    @classmethod
    def parse_yes_no(cls, v: object) -> object:
        """Render sends autoDeploy as "yes"/"no"."""
        if isinstance(v, str):
            if v == "yes":
                return True
            if v == "no":
                return False
            raise ValueError(f"autoDeploy must be 'yes' or 'no', got {v!r}")
        return v


class ServiceListItem(RenderModel):
    """Item from GET /services."""

    cursor: str | None = None
    service: Service


class CommitInfo(RenderModel):
    id: str
    message: str | None = None
    created_at: datetime | None = Field(None, alias="createdAt")

    @property
    def short_id(self) -> str:
        return self.id[:7]

    @property
    def title(self) -> str:
        """First line of the commit message."""
        return (self.message or "").splitlines()[0] if self.message else ""


class Deploy(RenderModel):
    """Deploy from POST /services/{id}/deploys or GET .../deploys/{deployId}.

    ``status`` is kept as the raw string so statuses added to the API later
    still parse; classification happens in :mod:`render_deploy.status`.
    """

    id: str = Field(..., description="Deploy ID (dep-...)")
    status: str = Field(..., description="Current deploy status")
    commit: CommitInfo | None = None
    trigger: str | None = Field(None, description="api, new_commit, manual, ...")
    created_at: datetime | None = Field(None, alias="createdAt")
    updated_at: datetime | None = Field(None, alias="updatedAt")
    finished_at: datetime | None = Field(None, alias="finishedAt")


class DeployListItem(RenderModel):
    """Item from GET /services/{id}/deploys."""

    cursor: str | None = None
    deploy: Deploy


class DeployHandle(BaseModel):
    """Identifies one deploy for the lifetime of a single wait."""

    model_config = ConfigDict(frozen=True)

    service_id: str
    deploy_id: str

    def dashboard_url(self, base_url: str = "https://dashboard.render.com") -> str:
        return f"{base_url.rstrip('/')}/web/{self.service_id}/deploys/{self.deploy_id}"
