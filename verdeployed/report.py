"""Console rendering of deployment records.

Rows are fixed-width so they can be written one at a time while the
report is still being resolved.
"""

import json
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Tuple

from .models import DeploymentRecord


# (title, width); the last column is not padded
COLUMNS: List[Tuple[str, int]] = [
    ("Stage", 24),
    ("Status", 12),
    ("Version", 16),
    ("ExecutionID", 0),
]

WIDE_COLUMNS: List[Tuple[str, int]] = [
    ("Stage", 24),
    ("Status", 12),
    ("Version", 16),
    ("Commit", 14),
    ("Revision", 36),
    ("ExecutionID", 0),
]


def _columns(wide: bool) -> List[Tuple[str, int]]:
    return WIDE_COLUMNS if wide else COLUMNS


def _line(values: Iterable[str], columns: List[Tuple[str, int]]) -> str:
    cells = []
    for (_, width), value in zip(columns, values):
        value = value or "-"
        if width:
            # always keep two spaces between columns
            cells.append(value.ljust(max(width, len(value) + 2)))
        else:
            cells.append(value)
    return "".join(cells).rstrip()


def table_header(wide: bool = False) -> List[str]:
    cols = _columns(wide)
    return [
        _line([title for title, _ in cols], cols),
        _line(["----"] * len(cols), cols),
    ]


def _cell_values(record: DeploymentRecord) -> Dict[str, str]:
    return {
        "Stage": record.stage_name,
        "Status": record.status.value,
        "Version": record.version,
        "Commit": record.commit,
        "Revision": record.revision_id,
        "ExecutionID": record.execution_id,
    }


def table_row(record: DeploymentRecord, wide: bool = False) -> str:
    cols = _columns(wide)
    cells = _cell_values(record)
    return _line([cells[title] for title, _ in cols], cols)


def report_payload(pipeline_name: str, records: Iterable[DeploymentRecord]) -> Dict:
    return {
        "pipeline": pipeline_name,
        "generatedAt": datetime.now(timezone.utc).isoformat(),
        "records": [r.to_dict() for r in records],
    }


def render_json(pipeline_name: str, records: Iterable[DeploymentRecord]) -> str:
    return json.dumps(report_payload(pipeline_name, records), indent=2)
