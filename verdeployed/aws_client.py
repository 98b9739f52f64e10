"""boto3 transport for CodePipeline and S3.

The three fetch methods are the only remote calls verdeployed makes. Every
failure surfaces as ``TransportError`` with the AWS message kept verbatim.
Retries are disabled; one overall deadline bounds the whole invocation.
"""

import time
from typing import Any, Callable, Dict, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .config import VerDeployedConfig
from .errors import TransportError
from .logging_utils import logger
from .models import PipelineExecution, StageState


def _client_error_message(e: ClientError) -> str:
    err = e.response.get("Error") or {}
    return err.get("Message") or err.get("Code") or str(e)


class AwsPipelineClient:
    """CodePipeline + S3 reader with a single deadline shared by all calls."""

    def __init__(
        self,
        region: str,
        timeout: float,
        *,
        session: Optional[boto3.session.Session] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Create the boto3 clients.

        Args:
            region: AWS region for both clients.
            timeout: Overall budget in seconds; also used as connect/read timeout.
            session: boto3 session to build clients from (default session if omitted).
            clock: Monotonic clock, injectable for tests.
        """
        self.region = region
        self.timeout = float(timeout)
        self._clock = clock
        self._deadline = clock() + self.timeout

        boto_cfg = Config(
            region_name=region,
            connect_timeout=self.timeout,
            read_timeout=self.timeout,
            retries={"total_max_attempts": 1, "mode": "standard"},
        )
        try:
            session = session or boto3.session.Session()
            self._codepipeline = session.client("codepipeline", config=boto_cfg)
            self._s3 = session.client("s3", config=boto_cfg)
        except BotoCoreError as e:
            logger.error("aws_session_failed", region=region, error=e.__class__.__name__)
            raise TransportError(f"aws session error: {e}", operation="Session") from e

    @classmethod
    def from_config(cls, cfg: VerDeployedConfig) -> "AwsPipelineClient":
        return cls(cfg.region, cfg.timeout)

    def _call(self, operation: str, prefix: str, fn: Callable[..., Dict[str, Any]], **kwargs: Any) -> Dict[str, Any]:
        remaining = self._deadline - self._clock()
        if remaining <= 0:
            raise TransportError(
                f"{prefix}: timed out after {self.timeout:g}s",
                operation=operation,
                code="Timeout",
            )
        try:
            return fn(**kwargs)
        except ClientError as e:
            code = (e.response.get("Error") or {}).get("Code") or ""
            logger.error("aws_call_failed", operation=operation, code=code)
            raise TransportError(f"{prefix}: {_client_error_message(e)}", operation=operation, code=code) from e
        except BotoCoreError as e:
            logger.error("aws_call_failed", operation=operation, error=e.__class__.__name__)
            raise TransportError(f"{prefix}: {e}", operation=operation) from e

    def fetch_pipeline_state(self, pipeline_name: str) -> List[StageState]:
        resp = self._call(
            "GetPipelineState",
            "failed to get pipeline state",
            self._codepipeline.get_pipeline_state,
            name=pipeline_name,
        )
        return [StageState.from_api(s) for s in resp.get("stageStates") or []]

    def fetch_pipeline_execution(self, pipeline_name: str, execution_id: str) -> PipelineExecution:
        resp = self._call(
            "GetPipelineExecution",
            f"failed to get pipeline execution {execution_id}",
            self._codepipeline.get_pipeline_execution,
            pipelineName=pipeline_name,
            pipelineExecutionId=execution_id,
        )
        return PipelineExecution.from_api(resp.get("pipelineExecution") or {})

    def fetch_object_metadata(self, bucket: str, key: str, version_id: str) -> Dict[str, str]:
        resp = self._call(
            "HeadObject",
            "failed to retrieve version metadata",
            self._s3.head_object,
            Bucket=bucket,
            Key=key,
            VersionId=version_id,
        )
        return dict(resp.get("Metadata") or {})
