#!/usr/bin/env python3
"""
verdeployed: which revision is deployed on each CodePipeline stage.

Usage:
    verdeployed --pipeline-name NAME --bucket BUCKET [--key KEY] [--region REGION]
                [--timeout 1m] [--config FILE] [--output table|json] [--wide]

Every option can also come from the environment (VERDEPLOYED_PIPELINE_NAME,
VERDEPLOYED_BUCKET, VERDEPLOYED_KEY, VERDEPLOYED_REGION, VERDEPLOYED_TIMEOUT)
or a .env file in the working directory.
"""

import argparse
import sys
from pathlib import Path
from typing import Callable, List, Optional, TextIO

from dotenv import find_dotenv, load_dotenv

from .aws_client import AwsPipelineClient
from .config import VerDeployedConfig, load_config
from .errors import ConfigError, VerDeployedError
from .logging_utils import env_log_level, logger
from .report import render_json, table_header, table_row
from .resolver import PipelineReader, assemble_report


EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2

ClientFactory = Callable[[VerDeployedConfig], PipelineReader]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="verdeployed",
        description="Report the source revision, version and commit deployed on every stage of a CodePipeline pipeline.",
    )
    parser.add_argument("--pipeline-name", "-p", help="CodePipeline pipeline name (required)")
    parser.add_argument("--bucket", "-b", help="Versioned S3 bucket holding the source artifact (required)")
    parser.add_argument("--key", "-k", help="Artifact key in the bucket (default: version.zip)")
    parser.add_argument("--region", "-r", help="AWS region (default: us-east-1)")
    parser.add_argument("--timeout", "-t", help="Overall timeout, e.g. 30s, 1m (default: 1m)")
    parser.add_argument("--config", "-c", type=Path, help="YAML config file")
    parser.add_argument("--output", "-o", choices=["table", "json"], default="table", help="Output format")
    parser.add_argument("--wide", "-w", action="store_true", help="Include commit and revision columns")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARN or ERROR (default: INFO)")
    return parser


def _write(out: TextIO, line: str) -> None:
    out.write(line + "\n")
    out.flush()


def run(
    cfg: VerDeployedConfig,
    client: PipelineReader,
    *,
    output: str = "table",
    wide: bool = False,
    out: Optional[TextIO] = None,
) -> None:
    """Resolve the report and write it to ``out``.

    Table rows are written as each stage resolves, so rows before a failing
    stage stay on screen. The header waits for the first row, so a failed
    state fetch leaves stdout empty. JSON is written only once every stage
    resolved.
    """
    out = out or sys.stdout
    records = assemble_report(client, cfg.pipeline_name, cfg.bucket, cfg.key)

    if output == "json":
        _write(out, render_json(cfg.pipeline_name, list(records)))
        return

    header_written = False
    for record in records:
        if not header_written:
            for line in table_header(wide):
                _write(out, line)
            header_written = True
        _write(out, table_row(record, wide))


def main(
    argv: Optional[List[str]] = None,
    *,
    client_factory: ClientFactory = AwsPipelineClient.from_config,
    out: Optional[TextIO] = None,
) -> int:
    args = build_parser().parse_args(argv)
    load_dotenv(find_dotenv(usecwd=True))
    logger.set_level(args.log_level or env_log_level())

    try:
        cfg = load_config(
            {
                "pipeline_name": args.pipeline_name,
                "bucket": args.bucket,
                "key": args.key,
                "region": args.region,
                "timeout": args.timeout,
            },
            config_path=args.config,
            dotenv=False,
        )
    except ConfigError as e:
        logger.error("config_invalid", field=e.field, error=str(e))
        print(f"parsing config: {e}", file=sys.stderr)
        return EXIT_CONFIG

    logger.info("report_started", pipeline=cfg.pipeline_name, bucket=cfg.bucket, key=cfg.key, region=cfg.region)

    try:
        client = client_factory(cfg)
        run(cfg, client, output=args.output, wide=args.wide, out=out)
    except VerDeployedError as e:
        logger.error("report_failed", pipeline=cfg.pipeline_name, kind=e.__class__.__name__, error=str(e))
        print(f"verdeployed: {e}", file=sys.stderr)
        return EXIT_FAILED

    logger.info("report_finished", pipeline=cfg.pipeline_name)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
