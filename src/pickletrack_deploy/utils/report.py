"""Pipeline result reporting and stage log export"""
import json
import os
from datetime import datetime, timezone
from typing import Any, Dict

from pickletrack_deploy.core import Logger
from pickletrack_deploy.deploy import PipelineResult

MAX_LOG_SIZE = 10_000_000  # 10MB


def print_summary(result: PipelineResult, logger: Logger) -> None:
    """Print the outcome of every stage and the deployed release."""
    logger.info("")
    logger.info("=" * 80)
    for stage in result.stages:
        mark = "✓" if stage.success else "✗"
        logger.info(f"  {mark} {stage.name:<10} {stage.duration_seconds:6.1f}s")
    for name in result.skipped:
        logger.info(f"  ⊙ {name:<10} skipped")

    if result.release is not None:
        logger.info("")
        logger.info(f"  Active binary: {result.release.binary_target}")
        logger.info(f"  Current data:  {result.release.data_target}")

    failed = result.failed_stage
    if failed is None:
        logger.info("")
        logger.info(f"✓ Done ({result.target})")
    else:
        if failed.output:
            logger.info("")
            logger.info("Output of the failing step (last 40 lines):")
            for line in failed.output.splitlines()[-40:]:
                logger.info(f"  {line}")
        logger.info("")
        logger.info(f"✗ Failed at '{failed.name}' on {result.target}")
    logger.info("=" * 80)


def write_stage_logs(result: PipelineResult, output_dir: str) -> Dict[str, Any]:
    """
    Save each stage's captured output and a metadata.json to output_dir.

    Returns:
        {
            "success": bool,
            "files_written": ["ship.log", "build.log", ..., "metadata.json"],
            "errors": ["build.log: truncated (>10MB)", ...],
            "sizes": {"build.log": 15234}
        }

    Error handling:
        Never raises exceptions (returns errors in result dict)
        Large logs (>10MB) are truncated to their last 10MB
    """
    files_written = []
    errors = []
    sizes = {}

    try:
        os.makedirs(output_dir, exist_ok=True)
    except OSError as e:
        return {"success": False, "files_written": [], "errors": [f"{output_dir}: {e}"], "sizes": {}}

    for stage in result.stages:
        filename = f"{stage.name}.log"
        content = stage.output
        if len(content) > MAX_LOG_SIZE:
            errors.append(f"{filename}: truncated (>10MB)")
            content = "[... truncated to last 10MB ...]\n" + content[-MAX_LOG_SIZE:]
        try:
            with open(os.path.join(output_dir, filename), 'w') as f:
                f.write(content)
            files_written.append(filename)
            sizes[filename] = len(content)
        except OSError as e:
            errors.append(f"{filename}: {e}")

    release = result.release
    metadata = {
        "target": result.target,
        "success": result.success,
        "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        "stages": [
            {
                "name": stage.name,
                "success": stage.success,
                "error_kind": stage.error.kind if stage.error else None,
                "error": str(stage.error) if stage.error else None,
                "duration_seconds": round(stage.duration_seconds, 3),
                "log": f"{stage.name}.log" if f"{stage.name}.log" in files_written else None,
            }
            for stage in result.stages
        ],
        "skipped": result.skipped,
        "release": {
            "binary_target": release.binary_target,
            "data_target": release.data_target,
        } if release else None,
    }
    try:
        with open(os.path.join(output_dir, "metadata.json"), 'w') as f:
            json.dump(metadata, f, indent=2)
        files_written.append("metadata.json")
    except OSError as e:
        errors.append(f"metadata.json: {e}")

    return {
        "success": len(errors) == 0,
        "files_written": files_written,
        "errors": errors,
        "sizes": sizes
    }
