"""Report which source revision is deployed on each CodePipeline stage."""

from .config import VerDeployedConfig, load_config
from .errors import (
    ConfigError,
    MetadataMissing,
    PipelineStateError,
    ResolutionMiss,
    TransportError,
    VerDeployedError,
)
from .models import DeploymentRecord, ExecutionStatus, PipelineExecution, StageState
from .resolver import assemble_report, build_report

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "DeploymentRecord",
    "ExecutionStatus",
    "MetadataMissing",
    "PipelineExecution",
    "PipelineStateError",
    "ResolutionMiss",
    "StageState",
    "TransportError",
    "VerDeployedConfig",
    "VerDeployedError",
    "__version__",
    "assemble_report",
    "build_report",
    "load_config",
]
