"""Read-only snapshots of CodePipeline/S3 state and the derived report rows.

``from_api`` constructors accept the dictionaries boto3 returns
(``get_pipeline_state`` / ``get_pipeline_execution``).
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


SOURCE_STAGE_NAME = "Source"


class ExecutionStatus(str, Enum):
    IN_PROGRESS = "InProgress"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    STOPPED = "Stopped"
    SUPERSEDED = "Superseded"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ExecutionStatus":
        """Map an API status string; anything unrecognised is UNKNOWN."""
        for member in cls:
            if member.value == (value or "").strip():
                return member
        return cls.UNKNOWN


class _Snapshot(BaseModel):
    model_config = ConfigDict(frozen=True)


class CurrentRevision(_Snapshot):
    revision_id: str = ""


class ActionState(_Snapshot):
    action_name: str = ""
    entity_url: str = ""
    current_revision: Optional[CurrentRevision] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "ActionState":
        rev = data.get("currentRevision")
        return cls(
            action_name=data.get("actionName") or "",
            entity_url=data.get("entityUrl") or "",
            current_revision=CurrentRevision(revision_id=rev.get("revisionId") or "") if rev else None,
        )


class StageState(_Snapshot):
    stage_name: str
    execution_id: Optional[str] = None
    status: ExecutionStatus = ExecutionStatus.UNKNOWN
    actions: List[ActionState] = Field(default_factory=list)

    @property
    def is_source(self) -> bool:
        return self.stage_name == SOURCE_STAGE_NAME

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "StageState":
        latest = data.get("latestExecution") or {}
        return cls(
            stage_name=data.get("stageName") or "",
            execution_id=latest.get("pipelineExecutionId") or None,
            status=ExecutionStatus.parse(latest.get("status")),
            actions=[ActionState.from_api(a) for a in data.get("actionStates") or []],
        )


class ArtifactRevision(_Snapshot):
    name: str = ""
    revision_id: str = ""
    revision_summary: str = ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "ArtifactRevision":
        return cls(
            name=data.get("name") or "",
            revision_id=data.get("revisionId") or "",
            revision_summary=data.get("revisionSummary") or "",
        )


class PipelineExecution(_Snapshot):
    execution_id: str
    status: ExecutionStatus = ExecutionStatus.UNKNOWN
    artifact_revisions: List[ArtifactRevision] = Field(default_factory=list)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "PipelineExecution":
        return cls(
            execution_id=data.get("pipelineExecutionId") or "",
            status=ExecutionStatus.parse(data.get("status")),
            artifact_revisions=[ArtifactRevision.from_api(r) for r in data.get("artifactRevisions") or []],
        )


class DeploymentRecord(_Snapshot):
    stage_name: str
    execution_id: str
    status: ExecutionStatus
    revision_id: str = ""
    version: str = ""
    commit: str = ""

    def to_dict(self) -> Dict[str, str]:
        """JSON-friendly form used by the CLI and the HTTP surface."""
        return {
            "stage": self.stage_name,
            "status": self.status.value,
            "version": self.version,
            "commit": self.commit,
            "revisionId": self.revision_id,
            "executionId": self.execution_id,
        }
