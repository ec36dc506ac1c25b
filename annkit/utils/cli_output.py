"""JSON output wrapper for CLI commands.

Wraps command payloads with schema metadata (schema_id, schema_version,
producer, produced_at) so scripted consumers can detect format changes.
"""

from __future__ import annotations

import json
from typing import Any

from annkit.utils.schema import build_schema_stamp


def json_response(
    schema_id: str,
    schema_version: int,
    **data: Any,
) -> str:
    """Create schema-wrapped JSON response for CLI output.

    Example:
        >>> json_response("knn_results", 1, k=2, results=[[0, 1]])
        {
          "schema_id": "knn_results",
          "schema_version": 1,
          "producer": "annkit-0.1.0",
          "produced_at": "2026-01-12T10:30:00+00:00",
          "k": 2,
          "results": [[0, 1]]
        }
    """
    stamp = build_schema_stamp(schema_id=schema_id, schema_version=schema_version)
    wrapped = {**stamp.apply({}), **data}
    return json.dumps(wrapped, indent=2, default=str)
