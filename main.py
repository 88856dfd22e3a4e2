from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from tqdm import tqdm

from longexpo.config import (
    BLEND_MODES,
    EngineConfig,
    config_as_dict,
    config_from_dict,
)
from longexpo.engine import CompositeResult, LongExposureEngine
from longexpo.errors import EngineError
from longexpo.logging_utils import setup_logging
from longexpo.selection import Selection, parse_selection
from longexpo.writer import now_stamp


@dataclass
class Job:
    name: str
    selection: Selection
    frames_dir: Optional[Path] = None
    project_id: Optional[str] = None
    mode: Optional[str] = None


@dataclass
class RunConfig:
    engine: EngineConfig
    run_root: Path
    jobs: List[Job]


def load_run_config(path: Path) -> RunConfig:
    with path.open("r") as f:
        data: Dict[str, Any] = yaml.safe_load(f) or {}

    engine = config_from_dict(data.get("engine", {}))
    run_root = Path(data.get("run_root", "runs"))

    jobs: List[Job] = []
    for idx, j in enumerate(data.get("jobs", [])):
        name = str(j.get("name") or f"job{idx}")
        if "frames_dir" not in j and "project_id" not in j:
            raise ValueError(f"Job {name!r} needs 'frames_dir' or 'project_id'")
        mode = j.get("mode")
        if mode is not None and mode not in BLEND_MODES:
            raise ValueError(
                f"Job {name!r}: unknown mode {mode!r}, expected one of {BLEND_MODES}"
            )
        jobs.append(
            Job(
                name=name,
                selection=parse_selection(j.get("selection", {})),
                frames_dir=(
                    Path(j["frames_dir"]) if "frames_dir" in j else None
                ),
                project_id=(
                    str(j["project_id"]) if "project_id" in j else None
                ),
                mode=mode,
            )
        )
    return RunConfig(engine=engine, run_root=run_root, jobs=jobs)


def save_json(obj: Dict[str, Any], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w") as f:
        json.dump(obj, f, indent=2)


def _run_job(engine: LongExposureEngine, job: Job) -> CompositeResult:
    if job.frames_dir is not None:
        return engine.compose(job.frames_dir, job.selection, job.mode)
    if job.project_id is None:
        raise ValueError(f"Job {job.name!r} needs 'frames_dir' or 'project_id'")
    return engine.compose_project(job.project_id, job.selection, job.mode)


def main(config_path: Path) -> None:
    cfg = load_run_config(config_path)
    stamp = now_stamp()
    run_dir = cfg.run_root / stamp
    setup_logging(run_dir, cfg.engine.log_level)
    log = logging.getLogger("longexpo")
    log.info("Starting run: %s", stamp)
    log.info("Config file: %s", str(config_path))
    save_json(
        {
            "engine": config_as_dict(cfg.engine),
            "jobs": [
                {
                    "name": j.name,
                    "frames_dir": None if j.frames_dir is None else str(j.frames_dir),
                    "project_id": j.project_id,
                    "mode": j.mode or cfg.engine.blend_mode,
                }
                for j in cfg.jobs
            ],
        },
        run_dir / "resolved_config.json",
    )

    engine = LongExposureEngine(cfg.engine)
    summary: Dict[str, Any] = {}
    totals: Dict[str, float] = {}
    for job in tqdm(cfg.jobs, desc="Composing", unit="job"):
        try:
            result = _run_job(engine, job)
        except (EngineError, ValueError) as e:
            log.error("Job %s failed: %s", job.name, e)
            summary[job.name] = {"ok": False, "error": str(e)}
            continue
        summary[job.name] = {
            "ok": True,
            "path": str(result.path),
            "url": result.url,
            "width": result.width,
            "height": result.height,
            "frames": result.frame_count,
            "mode": result.mode,
            "timings": result.timings,
        }
        for k, v in result.timings.get("totals", {}).items():
            totals[k] = totals.get(k, 0.0) + float(v)

    save_json(summary, run_dir / "run_summary.json")

    items = sorted(totals.items(), key=lambda kv: kv[1], reverse=True)
    log.info("Timing summary (total seconds):")
    for name, total_secs in items:
        log.info(" - %s: %.3fs", name, total_secs)
    failed = [n for n, s in summary.items() if not s["ok"]]
    if failed:
        log.warning("%d job(s) failed: %s", len(failed), ", ".join(failed))


if __name__ == "__main__":
    import argparse

    p = argparse.ArgumentParser()
    p.add_argument("--config", type=str, default="config.yaml")
    args = p.parse_args()
    main(Path(args.config))
