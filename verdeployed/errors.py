"""Error kinds raised while building a deployment report.

Every error is fatal for the report it occurs in: callers catch
``VerDeployedError`` at the outer surface (CLI or HTTP) and stop.
"""


class VerDeployedError(Exception):
    """Base class for all verdeployed failures."""


class ConfigError(VerDeployedError):
    """Configuration is missing or invalid."""

    def __init__(self, message: str, *, field: str = ""):
        super().__init__(message)
        self.field = field


class TransportError(VerDeployedError):
    """A remote fetch (CodePipeline or S3) could not be completed."""

    def __init__(self, message: str, *, operation: str = "", code: str = ""):
        super().__init__(message)
        self.operation = operation
        self.code = code


class PipelineStateError(VerDeployedError):
    """Pipeline state cannot be classified (no Source stage, no execution id)."""


class MetadataMissing(VerDeployedError):
    """The artifact version lacks a metadata field the report needs."""

    def __init__(self, message: str, *, field: str, stage: str = ""):
        super().__init__(message)
        self.field = field
        self.stage = stage


class ResolutionMiss(MetadataMissing):
    """No revision id was resolved for a stage, so there is nothing to look up.

    Pattern misses are tolerated while revisions are extracted and only
    become fatal here, when metadata is requested for the empty revision.
    """

    def __init__(self, message: str, *, stage: str = ""):
        super().__init__(message, field="VersionId", stage=stage)
