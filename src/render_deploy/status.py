"""Deploy status classification.

Every status string the Render API reports maps to exactly one
:class:`StatusClass`. Unknown strings are treated as pending so an API change
never reports a deploy as failed while it may still be going live.
"""

from enum import Enum


class DeployStatus(str, Enum):
    CREATED = "created"
    BUILD_IN_PROGRESS = "build_in_progress"
    UPDATE_IN_PROGRESS = "update_in_progress"
    PRE_DEPLOY_IN_PROGRESS = "pre_deploy_in_progress"
    LIVE = "live"
    DEACTIVATED = "deactivated"
    BUILD_FAILED = "build_failed"
    UPDATE_FAILED = "update_failed"
    PRE_DEPLOY_FAILED = "pre_deploy_failed"
    CANCELED = "canceled"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


class StatusClass(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"

    @property
    def is_terminal(self) -> bool:
        return self is not StatusClass.PENDING


_DISPLAY_NAMES = {
    DeployStatus.CREATED: "Created",
    DeployStatus.BUILD_IN_PROGRESS: "Build In Progress",
    DeployStatus.UPDATE_IN_PROGRESS: "Update In Progress",
    DeployStatus.PRE_DEPLOY_IN_PROGRESS: "Pre-Deploy In Progress",
    DeployStatus.LIVE: "Live",
    DeployStatus.DEACTIVATED: "Deactivated",
    DeployStatus.BUILD_FAILED: "Build Failed",
    DeployStatus.UPDATE_FAILED: "Update Failed",
    DeployStatus.PRE_DEPLOY_FAILED: "Pre-Deploy Failed",
    DeployStatus.CANCELED: "Canceled",
}

STATUS_CLASSES: dict[DeployStatus, StatusClass] = {
    DeployStatus.CREATED: StatusClass.PENDING,
    DeployStatus.BUILD_IN_PROGRESS: StatusClass.PENDING,
    DeployStatus.UPDATE_IN_PROGRESS: StatusClass.PENDING,
    DeployStatus.PRE_DEPLOY_IN_PROGRESS: StatusClass.PENDING,
    DeployStatus.LIVE: StatusClass.SUCCESS,
    DeployStatus.DEACTIVATED: StatusClass.FAILURE,
    DeployStatus.BUILD_FAILED: StatusClass.FAILURE,
    DeployStatus.UPDATE_FAILED: StatusClass.FAILURE,
    DeployStatus.PRE_DEPLOY_FAILED: StatusClass.FAILURE,
    DeployStatus.CANCELED: StatusClass.FAILURE,
}


def parse_status(status: str) -> DeployStatus | None:
    """Return the known status for ``status``, or None if unrecognized."""
    try:
        return DeployStatus(status)
    except ValueError:
        return None


def is_recognized(status: str) -> bool:
    return parse_status(status) is not None


def classify(status: str) -> StatusClass:
    """Map a raw status string to pending, success or failure."""
    known = parse_status(status)
    if known is None:
        return StatusClass.PENDING
    return STATUS_CLASSES[known]


def display_status(status: str) -> str:
    """Human-readable label; unknown statuses are shown verbatim."""
    known = parse_status(status)
    return known.display_name if known else status
