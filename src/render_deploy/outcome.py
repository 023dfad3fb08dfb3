"""Final results of waiting on a deploy, and the exit codes they map to."""

from enum import IntEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict

from render_deploy.schemas import Deploy, DeployHandle


class ExitCode(IntEnum):
    OK = 0
    TRIGGER_ERROR = 1
    # 2 is click's usage error
    DEPLOY_FAILED = 3
    TIMED_OUT = 4
    CONFIGURATION_ERROR = 5


class DeployedSuccessfully(BaseModel):
    """The deploy reached ``live``."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["deployed"] = "deployed"
    handle: DeployHandle
    deploy: Deploy
    elapsed: float = 0.0

    @property
    def exit_code(self) -> ExitCode:
        return ExitCode.OK


class DeployFailed(BaseModel):
    """The deploy reached a terminal failure status.

    ``reason`` is the raw status string reported by the platform.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["failed"] = "failed"
    handle: DeployHandle
    reason: str
    deploy: Deploy
    elapsed: float = 0.0

    @property
    def exit_code(self) -> ExitCode:
        return ExitCode.DEPLOY_FAILED


class TimedOut(BaseModel):
    """The deadline passed while the deploy was still pending.

    The remote deploy keeps running; only local observation stopped.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["timed_out"] = "timed_out"
    handle: DeployHandle
    last_status: str | None = None
    last_error: str | None = None
    elapsed: float = 0.0

    @property
    def exit_code(self) -> ExitCode:
        return ExitCode.TIMED_OUT


Outcome = DeployedSuccessfully | DeployFailed | TimedOut
