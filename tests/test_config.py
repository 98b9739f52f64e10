"""Tests for config.py: precedence, defaults and validation."""

from __future__ import annotations

import pytest

from verdeployed.config import (
    DEFAULT_KEY,
    DEFAULT_REGION,
    load_config,
    load_config_file,
    parse_duration,
)
from verdeployed.errors import ConfigError


class TestDefaults:
    def test_defaults_applied(self):
        cfg = load_config({"pipeline_name": "app", "bucket": "releases"}, env={})
        assert cfg.region == DEFAULT_REGION == "us-east-1"
        assert cfg.key == DEFAULT_KEY == "version.zip"
        assert cfg.timeout == 60.0

    def test_pipeline_name_required(self):
        with pytest.raises(ConfigError, match="pipeline name") as exc_info:
            load_config({"bucket": "releases"}, env={})
        assert exc_info.value.field == "pipeline_name"

    def test_bucket_required(self):
        with pytest.raises(ConfigError, match="bucket"):
            load_config({"pipeline_name": "app"}, env={})


class TestPrecedence:
    def test_env_used(self):
        env = {
            "VERDEPLOYED_PIPELINE_NAME": "app",
            "VERDEPLOYED_BUCKET": "releases",
            "VERDEPLOYED_REGION": "eu-west-1",
            "VERDEPLOYED_TIMEOUT": "30s",
        }
        cfg = load_config(env=env)
        assert cfg.pipeline_name == "app"
        assert cfg.region == "eu-west-1"
        assert cfg.timeout == 30.0

    def test_aws_region_alias(self):
        cfg = load_config({"pipeline_name": "app", "bucket": "b"}, env={"AWS_REGION": "ap-south-1"})
        assert cfg.region == "ap-south-1"

    def test_overrides_beat_env(self):
        env = {"VERDEPLOYED_PIPELINE_NAME": "from-env", "VERDEPLOYED_BUCKET": "releases"}
        cfg = load_config({"pipeline_name": "from-flag", "key": None}, env=env)
        assert cfg.pipeline_name == "from-flag"
        assert cfg.key == "version.zip"

    def test_env_beats_file(self, tmp_path):
        path = tmp_path / "verdeployed.yaml"
        path.write_text("pipelineName: from-file\nbucket: file-bucket\nkey: build/version.zip\ntimeout: 90\n")
        cfg = load_config(config_path=path, env={"VERDEPLOYED_BUCKET": "env-bucket"})
        assert cfg.pipeline_name == "from-file"
        assert cfg.bucket == "env-bucket"
        assert cfg.key == "build/version.zip"
        assert cfg.timeout == 90.0

    def test_unknown_override(self):
        with pytest.raises(ConfigError, match="unknown"):
            load_config({"colour": "blue"}, env={})


class TestConfigFile:
    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config_file(tmp_path / "nope.yaml")

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config_file(path)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("bucket: [unclosed\n")
        with pytest.raises(ConfigError, match="invalid YAML"):
            load_config_file(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config_file(path) == {}


class TestParseDuration:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("1m", 60.0),
            ("90s", 90.0),
            ("1m30s", 90.0),
            ("500ms", 0.5),
            ("1h", 3600.0),
            ("45", 45.0),
            ("2.5", 2.5),
            (10, 10.0),
        ],
    )
    def test_valid(self, raw, expected):
        assert parse_duration(raw) == pytest.approx(expected)

    @pytest.mark.parametrize("raw", ["", "abc", "1x", "m1", "1m junk", 0, "-5", True])
    def test_invalid(self, raw):
        with pytest.raises(ConfigError):
            parse_duration(raw)
