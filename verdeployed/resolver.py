"""Revision resolution: which source revision each pipeline stage runs.

The stage named ``Source`` defines the current epoch (its latest execution
id) and carries the live revision id on its S3 action. Stages that ran in
that same execution inherit the live revision; every other stage is resolved
from the artifact revisions recorded for its own execution. Revision ids are
S3 object version ids of the configured artifact, whose user metadata holds
the Version and Commit that end up in the report.
"""

import re
from typing import Dict, Iterator, List, Optional, Protocol, Sequence, Tuple

from .errors import MetadataMissing, PipelineStateError, ResolutionMiss
from .logging_utils import logger
from .models import (
    SOURCE_STAGE_NAME,
    ActionState,
    ArtifactRevision,
    DeploymentRecord,
    PipelineExecution,
    StageState,
)


# S3 console link set as entityUrl on S3 source actions
SOURCE_URL_RE = re.compile(r"https://.*aws\.amazon\.com/s3/home\?region=[a-zA-Z]{2,3}-[a-zA-Z]+-[0-9]+#")

# Revision summary grammar:
#   summary := [any text] store " version id: " value
#   store   := "Amazon S3"
#   value   := rest of the line, surrounding whitespace stripped, non-empty
SOURCE_STORE = "Amazon S3"
REVISION_SUMMARY_RE = re.compile(re.escape(SOURCE_STORE) + r" version id: *(?P<value>[^\r\n]*)")

REQUIRED_METADATA = ("Version", "Commit")


class PipelineReader(Protocol):
    def fetch_pipeline_state(self, pipeline_name: str) -> List[StageState]: ...

    def fetch_pipeline_execution(self, pipeline_name: str, execution_id: str) -> PipelineExecution: ...

    def fetch_object_metadata(self, bucket: str, key: str, version_id: str) -> Dict[str, str]: ...


# ------------------------------------------------------------
# Pattern matching
# ------------------------------------------------------------

def is_source_console_url(url: Optional[str]) -> bool:
    return bool(url and SOURCE_URL_RE.search(url))


def revision_from_summary(summary: Optional[str]) -> Optional[str]:
    """Return the version id embedded in a revision summary, or None.

    >>> revision_from_summary("Amazon S3 version id: 3HL4kqtJlcpXroDTDmJ")
    '3HL4kqtJlcpXroDTDmJ'
    """
    if not summary:
        return None
    m = REVISION_SUMMARY_RE.search(summary)
    if not m:
        return None
    value = m.group("value").strip()
    return value or None


# ------------------------------------------------------------
# Epoch + live revision
# ------------------------------------------------------------

def find_source_stage(stages: Sequence[StageState]) -> StageState:
    sources = [s for s in stages if s.is_source]
    if not sources:
        raise PipelineStateError(f"pipeline has no stage named {SOURCE_STAGE_NAME!r}")
    if len(sources) > 1:
        raise PipelineStateError(f"pipeline has {len(sources)} stages named {SOURCE_STAGE_NAME!r}")
    return sources[0]


def current_epoch(source: StageState) -> str:
    """Latest execution id of the source stage; fatal when missing."""
    if not source.execution_id:
        raise PipelineStateError(f"stage {source.stage_name!r} has no latest execution id")
    return source.execution_id


def extract_live_revision(actions: Sequence[ActionState]) -> str:
    """Revision id of the first action pointing at the S3 console; "" if none.

    An action that matches but carries no current revision still ends the
    scan: first match wins.
    """
    for action in actions:
        if is_source_console_url(action.entity_url):
            rev = action.current_revision.revision_id if action.current_revision else ""
            if not rev:
                logger.warn("live_revision_missing", action=action.action_name, reason="no_current_revision")
            return rev
    logger.warn("live_revision_missing", reason="no_source_action", actions=len(actions))
    return ""


# ------------------------------------------------------------
# Historical resolution
# ------------------------------------------------------------

def revision_from_artifacts(revisions: Sequence[ArtifactRevision]) -> str:
    for rev in revisions:
        if revision_from_summary(rev.revision_summary) is not None:
            return rev.revision_id
    return ""


def resolve_historical_revision(client: PipelineReader, pipeline_name: str, execution_id: str) -> str:
    """Fetch one past execution and return its source revision id ("" on a miss).

    Transport failures propagate; they are fatal for the report.
    """
    logger.debug("historical_lookup", execution_id=execution_id)
    execution = client.fetch_pipeline_execution(pipeline_name, execution_id)
    rev = revision_from_artifacts(execution.artifact_revisions)
    if not rev:
        logger.warn(
            "historical_revision_missing",
            execution_id=execution_id,
            artifacts=len(execution.artifact_revisions),
        )
    return rev


def resolve_stage_revision(
    stage: StageState,
    epoch: str,
    live_revision: str,
    client: PipelineReader,
    pipeline_name: str,
) -> str:
    if not stage.execution_id:
        raise PipelineStateError(f"stage {stage.stage_name!r} has no latest execution id")
    if stage.execution_id == epoch:
        return live_revision
    return resolve_historical_revision(client, pipeline_name, stage.execution_id)


def resolve_revisions(
    stages: Sequence[StageState],
    client: PipelineReader,
    pipeline_name: str,
) -> Iterator[Tuple[StageState, str]]:
    """Yield ``(stage, revision_id)`` in stage order.

    The epoch and live revision are computed once, up front, from the
    Source stage wherever it sits in the list.
    """
    source = find_source_stage(stages)
    epoch = current_epoch(source)
    live_revision = extract_live_revision(source.actions)
    logger.info("epoch_tracked", execution_id=epoch, revision_id=live_revision)

    for stage in stages:
        yield stage, resolve_stage_revision(stage, epoch, live_revision, client, pipeline_name)


# ------------------------------------------------------------
# Metadata lookup
# ------------------------------------------------------------

def lookup_metadata(
    client: PipelineReader,
    bucket: str,
    key: str,
    revision_id: str,
    *,
    stage: str = "",
) -> Tuple[str, str]:
    """Return ``(version, commit)`` stored on the artifact at ``revision_id``.

    S3 hands user metadata back with lowercased names, so fields are matched
    case-insensitively.

    Raises:
        ResolutionMiss: ``revision_id`` is empty; the store is not called.
        MetadataMissing: a required field is absent or empty.
        TransportError: object/version missing or unreachable.
    """
    if not revision_id:
        raise ResolutionMiss(f"stage {stage!r}: no revision id resolved, cannot look up version metadata", stage=stage)

    raw = client.fetch_object_metadata(bucket, key, revision_id)
    meta = {str(k).lower(): v for k, v in raw.items()}

    values = []
    for field in REQUIRED_METADATA:
        v = meta.get(field.lower())
        if not v:
            raise MetadataMissing(
                f"stage {stage!r}: s3://{bucket}/{key}?versionId={revision_id} has no {field!r} metadata",
                field=field,
                stage=stage,
            )
        values.append(str(v))
    return values[0], values[1]


# ------------------------------------------------------------
# Report assembly
# ------------------------------------------------------------

def assemble_report(
    client: PipelineReader,
    pipeline_name: str,
    bucket: str,
    key: str,
    stages: Optional[Sequence[StageState]] = None,
) -> Iterator[DeploymentRecord]:
    """Yield one DeploymentRecord per stage, in pipeline order.

    ``stages`` is fetched when not supplied. Records are produced as each
    stage resolves; the first error stops the iteration.
    """
    if stages is None:
        stages = client.fetch_pipeline_state(pipeline_name)
        logger.info("pipeline_state_fetched", pipeline=pipeline_name, stages=len(stages))

    for stage, revision_id in resolve_revisions(stages, client, pipeline_name):
        version, commit = lookup_metadata(client, bucket, key, revision_id, stage=stage.stage_name)
        logger.debug("metadata_resolved", stage=stage.stage_name, revision_id=revision_id, version=version)
        yield DeploymentRecord(
            stage_name=stage.stage_name,
            execution_id=stage.execution_id or "",
            status=stage.status,
            revision_id=revision_id,
            version=version,
            commit=commit,
        )


def build_report(
    client: PipelineReader,
    pipeline_name: str,
    bucket: str,
    key: str,
) -> List[DeploymentRecord]:
    """All records or an exception; never a partial list."""
    return list(assemble_report(client, pipeline_name, bucket, key))
