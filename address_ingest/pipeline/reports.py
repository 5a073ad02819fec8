"""Run report output."""

from __future__ import annotations

from pathlib import Path

from address_ingest.common.fs import write_json
from address_ingest.common.time_utils import utc_timestamp_iso


def write_run_summary(data_dir: Path, run_id: str, result: dict) -> Path:
    summary_path = data_dir / "run_meta" / f"{run_id}.summary.json"
    payload = {
        "run_id": run_id,
        "finished_at": utc_timestamp_iso(),
        **result,
    }
    write_json(summary_path, payload)
    return summary_path
