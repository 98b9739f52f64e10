"""Shared fixtures: a fake CodePipeline/S3 reader and snapshot builders.

No network access; every remote call goes through FakePipelineReader,
which records what was asked for.
"""

from __future__ import annotations

from typing import Callable

import pytest

from verdeployed.errors import TransportError
from verdeployed.logging_utils import logger
from verdeployed.models import (
    ActionState,
    ArtifactRevision,
    CurrentRevision,
    ExecutionStatus,
    PipelineExecution,
    StageState,
)

SOURCE_URL = "https://console.aws.amazon.com/s3/home?region=us-east-1#&bucket=releases&prefix=version.zip"
CODECOMMIT_URL = "https://console.aws.amazon.com/codecommit/home?region=us-east-1#/repository/app"


class FakePipelineReader:
    def __init__(self, stages=None, executions=None, metadata=None):
        self.stages = list(stages or [])
        self.executions = dict(executions or {})
        self.metadata = dict(metadata or {})
        self.state_calls = 0
        self.execution_calls: list[str] = []
        self.metadata_calls: list[tuple[str, str, str]] = []

    def fetch_pipeline_state(self, pipeline_name):
        self.state_calls += 1
        return list(self.stages)

    def fetch_pipeline_execution(self, pipeline_name, execution_id):
        self.execution_calls.append(execution_id)
        if execution_id not in self.executions:
            raise TransportError(
                f"failed to get pipeline execution {execution_id}: PipelineExecution not found",
                operation="GetPipelineExecution",
            )
        return self.executions[execution_id]

    def fetch_object_metadata(self, bucket, key, version_id):
        self.metadata_calls.append((bucket, key, version_id))
        if version_id not in self.metadata:
            raise TransportError("failed to retrieve version metadata: Not Found", operation="HeadObject", code="404")
        return dict(self.metadata[version_id])


def source_action(revision_id: str = "R1", url: str = SOURCE_URL, name: str = "Source") -> ActionState:
    return ActionState(
        action_name=name,
        entity_url=url,
        current_revision=CurrentRevision(revision_id=revision_id) if revision_id is not None else None,
    )


def stage(name: str, execution_id: str | None, status: str = "Succeeded", actions=None) -> StageState:
    return StageState(
        stage_name=name,
        execution_id=execution_id,
        status=ExecutionStatus.parse(status),
        actions=list(actions or []),
    )


def execution(execution_id: str, *summaries: tuple[str, str]) -> PipelineExecution:
    return PipelineExecution(
        execution_id=execution_id,
        status=ExecutionStatus.SUCCEEDED,
        artifact_revisions=[
            ArtifactRevision(name=f"artifact{i}", revision_id=rev, revision_summary=summary)
            for i, (rev, summary) in enumerate(summaries)
        ],
    )


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep developer AWS/verdeployed settings out of the tests."""
    for name in (
        "VERDEPLOYED_REGION",
        "VERDEPLOYED_PIPELINE_NAME",
        "VERDEPLOYED_BUCKET",
        "VERDEPLOYED_KEY",
        "VERDEPLOYED_TIMEOUT",
        "AWS_REGION",
        "AWS_DEFAULT_REGION",
        "AWS_PROFILE",
        "VERDEPLOYED_LOG_LEVEL",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def restore_log_level():
    level = logger.level
    yield
    logger.set_level(level)


@pytest.fixture
def make_stage() -> Callable[..., StageState]:
    return stage


@pytest.fixture
def make_source_action() -> Callable[..., ActionState]:
    return source_action


@pytest.fixture
def make_execution() -> Callable[..., PipelineExecution]:
    return execution


@pytest.fixture
def sample_stages() -> list[StageState]:
    """Source/Build ran in E1; Staging in E0; Production in E-old."""
    return [
        stage("Source", "E1", actions=[source_action("R1")]),
        stage("Build", "E1"),
        stage("Staging", "E0"),
        stage("Production", "E-old", status="Superseded"),
    ]


@pytest.fixture
def sample_reader(sample_stages) -> FakePipelineReader:
    return FakePipelineReader(
        stages=sample_stages,
        executions={
            "E0": execution("E0", ("R0", "Amazon S3 version id: R0")),
            "E-old": execution("E-old", ("R-old", "Amazon S3 version id: R-old")),
        },
        metadata={
            "R1": {"version": "2.3.0", "commit": "abc123"},
            "R0": {"version": "2.2.0", "commit": "def456"},
            "R-old": {"version": "2.1.0", "commit": "0a1b2c"},
        },
    )


@pytest.fixture
def fake_reader_cls():
    return FakePipelineReader
