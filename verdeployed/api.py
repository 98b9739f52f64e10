from datetime import datetime, timezone
from typing import Any, Dict, List

from dotenv import find_dotenv, load_dotenv
from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel

from .aws_client import AwsPipelineClient
from .config import VerDeployedConfig, load_config
from .errors import (
    ConfigError,
    MetadataMissing,
    PipelineStateError,
    TransportError,
    VerDeployedError,
)
from .logging_utils import logger
from .resolver import PipelineReader, build_report


# Load .env if present (local dev)
load_dotenv(find_dotenv(usecwd=True))

APP_NAME = "verdeployed"


class DeploymentItem(BaseModel):
    stage: str
    status: str
    version: str
    commit: str
    revisionId: str
    executionId: str


class DeploymentsResponse(BaseModel):
    ok: bool
    pipeline: str
    checkedAt: str
    records: List[DeploymentItem]


def _status_for(e: VerDeployedError) -> int:
    if isinstance(e, ConfigError):
        return 400
    if isinstance(e, PipelineStateError):
        return 404
    if isinstance(e, MetadataMissing):
        return 422
    if isinstance(e, TransportError):
        return 502
    return 500


def get_client_factory():
    return AwsPipelineClient.from_config


app = FastAPI(title=APP_NAME)


@app.get("/api/health")
def health() -> Dict[str, Any]:
    return {"ok": True, "service": APP_NAME}


@app.get("/api/pipelines/{pipeline_name}/deployments", response_model=DeploymentsResponse)
def pipeline_deployments(pipeline_name: str, client_factory=Depends(get_client_factory)) -> DeploymentsResponse:
    ts = datetime.now(tz=timezone.utc).isoformat()

    try:
        cfg: VerDeployedConfig = load_config({"pipeline_name": pipeline_name}, dotenv=False)
        client: PipelineReader = client_factory(cfg)
        records = build_report(client, cfg.pipeline_name, cfg.bucket, cfg.key)
    except VerDeployedError as e:
        logger.error("report_failed", pipeline=pipeline_name, kind=e.__class__.__name__, error=str(e))
        raise HTTPException(status_code=_status_for(e), detail=str(e)) from e

    return DeploymentsResponse(
        ok=True,
        pipeline=cfg.pipeline_name,
        checkedAt=ts,
        records=[DeploymentItem(**r.to_dict()) for r in records],
    )
