import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import find_dotenv, load_dotenv

from .errors import ConfigError


DEFAULT_REGION = "us-east-1"
DEFAULT_KEY = "version.zip"
DEFAULT_TIMEOUT_SECONDS = 60.0

# field -> environment names, first non-empty wins
ENV_NAMES: Dict[str, tuple] = {
    "region": ("VERDEPLOYED_REGION", "AWS_REGION", "AWS_DEFAULT_REGION"),
    "pipeline_name": ("VERDEPLOYED_PIPELINE_NAME",),
    "bucket": ("VERDEPLOYED_BUCKET",),
    "key": ("VERDEPLOYED_KEY",),
    "timeout": ("VERDEPLOYED_TIMEOUT",),
}

# YAML keys accepted per field (snake_case and the camelCase used in UI configs)
FILE_KEYS: Dict[str, tuple] = {
    "region": ("region",),
    "pipeline_name": ("pipeline_name", "pipelineName", "pipeline"),
    "bucket": ("bucket",),
    "key": ("key",),
    "timeout": ("timeout",),
}

_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


@dataclass(frozen=True)
class VerDeployedConfig:
    pipeline_name: str
    bucket: str
    region: str = DEFAULT_REGION
    key: str = DEFAULT_KEY
    timeout: float = DEFAULT_TIMEOUT_SECONDS


def _env_any(env: Mapping[str, str], *names: str) -> Optional[str]:
    """Return first non-empty environment variable value from given names."""
    for n in names:
        v = env.get(n)
        if v and str(v).strip():
            return str(v).strip()
    return None


def parse_duration(value: Any) -> float:
    """Parse a timeout into seconds.

    Accepts a bare number of seconds (``30``, ``"2.5"``) or a Go-style
    duration string built from ``h``, ``m``, ``s`` and ``ms`` parts
    (``"1m"``, ``"1m30s"``, ``"500ms"``).

    Raises:
        ConfigError: If the value cannot be parsed or is not positive.
    """
    if isinstance(value, bool):
        raise ConfigError(f"invalid timeout: {value!r}", field="timeout")

    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        text = str(value or "").strip().lower()
        if not text:
            raise ConfigError("timeout must not be empty", field="timeout")
        try:
            seconds = float(text)
        except ValueError:
            pos = 0
            seconds = 0.0
            for m in _DURATION_PART_RE.finditer(text):
                if m.start() != pos:
                    break
                seconds += float(m.group(1)) * _DURATION_UNITS[m.group(2)]
                pos = m.end()
            if pos == 0 or pos != len(text):
                raise ConfigError(f"invalid timeout: {value!r}", field="timeout")

    if seconds <= 0:
        raise ConfigError(f"timeout must be positive, got {value!r}", field="timeout")
    return seconds


def load_config_file(path: Path) -> Dict[str, Any]:
    """Load a YAML config file and map its keys onto config field names."""
    if not path.exists():
        raise ConfigError(f"config file not found: {path}", field="config")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}", field="config") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config file must contain a mapping: {path}", field="config")

    out: Dict[str, Any] = {}
    for field, keys in FILE_KEYS.items():
        for k in keys:
            v = data.get(k)
            if v not in (None, ""):
                out[field] = v
                break
    return out


def validate(cfg: VerDeployedConfig) -> VerDeployedConfig:
    """Check required fields and normalise values; raise ConfigError on problems."""
    pipeline_name = str(cfg.pipeline_name or "").strip()
    bucket = str(cfg.bucket or "").strip()
    region = str(cfg.region or "").strip() or DEFAULT_REGION
    key = str(cfg.key or "").strip() or DEFAULT_KEY

    if not pipeline_name:
        raise ConfigError("pipeline name is required (--pipeline-name or VERDEPLOYED_PIPELINE_NAME)", field="pipeline_name")
    if not bucket:
        raise ConfigError("artifact bucket is required (--bucket or VERDEPLOYED_BUCKET)", field="bucket")

    return VerDeployedConfig(
        pipeline_name=pipeline_name,
        bucket=bucket,
        region=region,
        key=key,
        timeout=parse_duration(cfg.timeout),
    )


def load_config(
    overrides: Optional[Mapping[str, Any]] = None,
    *,
    config_path: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
    dotenv: bool = True,
) -> VerDeployedConfig:
    """Build the configuration.

    Precedence, highest first: ``overrides`` (CLI flags), environment,
    YAML file at ``config_path``, defaults.

    Args:
        overrides: Explicit values; ``None``/empty entries are ignored.
        config_path: Optional YAML file.
        env: Environment mapping; defaults to ``os.environ``.
        dotenv: Load ``.env`` from the working directory first (only when
            reading ``os.environ``; existing variables win).
    """
    if env is None:
        if dotenv:
            load_dotenv(find_dotenv(usecwd=True))
        env = os.environ

    values: Dict[str, Any] = {
        "pipeline_name": "",
        "bucket": "",
        "region": DEFAULT_REGION,
        "key": DEFAULT_KEY,
        "timeout": DEFAULT_TIMEOUT_SECONDS,
    }

    if config_path is not None:
        values.update(load_config_file(Path(config_path)))

    for field, names in ENV_NAMES.items():
        v = _env_any(env, *names)
        if v is not None:
            values[field] = v

    for field, v in (overrides or {}).items():
        if field not in values:
            raise ConfigError(f"unknown config field: {field}", field=field)
        if v not in (None, ""):
            values[field] = v

    return validate(VerDeployedConfig(**values))
