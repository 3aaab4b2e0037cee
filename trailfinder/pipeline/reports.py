"""Per-stage reports and run summary aggregation."""

from __future__ import annotations

from pathlib import Path

from trailfinder.common.fs import read_json, write_json


def stage_report_path(reports_dir: Path, stage: str) -> Path:
    return reports_dir / f"{stage}_report.json"


def write_stage_report(reports_dir: Path, stage: str, run_id: str, counts: dict, *, warnings: list[str] | None = None) -> Path:
    path = stage_report_path(reports_dir, stage)
    write_json(
        path,
        {
            "stage": stage,
            "run_id": run_id,
            "counts": counts,
            "warnings": list(warnings or []),
        },
    )
    return path


def write_run_summary(reports_dir: Path, run_id: str, stages: list[str], failed_stages: list[str]) -> Path:
    stage_reports = {}
    warning_count = 0
    error_count = len(failed_stages)

    for stage in stages:
        report_path = stage_report_path(reports_dir, stage)
        if stage in failed_stages:
            stage_reports[stage] = {"status": "failed"}
            continue
        if not report_path.exists():
            stage_reports[stage] = {"status": "missing_report"}
            error_count += 1
            continue
        report = read_json(report_path)
        if report.get("run_id") != run_id:
            stage_reports[stage] = {"status": "stale_report", "run_id": report.get("run_id")}
            error_count += 1
            continue
        stage_reports[stage] = {
            "status": "ok",
            "counts": report.get("counts", {}),
            "warnings": report.get("warnings", []),
        }
        warning_count += len(report.get("warnings", []))

    status = "success"
    if error_count > 0:
        status = "error"
    elif warning_count > 0:
        status = "partial"

    summary_path = reports_dir / "run_summary.json"
    write_json(
        summary_path,
        {
            "run_id": run_id,
            "status": status,
            "stages": stages,
            "warning_count": warning_count,
            "error_count": error_count,
            "stage_reports": stage_reports,
        },
    )
    return summary_path
