from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from time import perf_counter
from typing import Any

import numpy as np
from loguru import logger

from .data.loading import read_rows, split_rows
from .evaluation.metrics import regression_summary
from .kernels.base import KernelConfig
from .kernels.library import create_kernel
from .models.gaussian_linear import GaussianLinearModel
from .models.task import Task
from .optimization.gradient_descent import GradientDescentConfig
from .utilities.hashing import compute_dataset_signature
from .utilities.log_config import configure_logging
from .utilities.run_context import RunContext, create_run_context


PIPELINE_VERSION = "1.0.0"


def _evaluation_report(model: GaussianLinearModel, rows: list[list[float]]) -> dict[str, Any]:
    if model.task is Task.CLASSIFICATION:
        return model.evaluate(rows).summary()
    features, labels = split_rows(rows)
    return regression_summary(model.score_rows(features), labels)


def run_training_pipeline(
    *,
    data_csv: Path,
    task: str,
    has_header: bool,
    optimizer_config: GradientDescentConfig,
    kernel_name: str | None,
    kernel_params: dict[str, float],
    fixed_kernel_params: list[str],
    eigen_threshold: float | None,
    eval_csv: Path | None,
    output_root: Path,
    run_id: str | None,
    log_level: str = "INFO",
) -> dict[str, Any]:
    optimizer_config.validate()
    resolved_task = Task.parse(task)

    ctx = create_run_context(pipeline="training", output_root=output_root, run_id=run_id)
    file_sink = configure_logging(level=log_level, log_file=ctx.logs_dir / "training.log")
    try:
        return _train_and_report(
            ctx,
            data_csv=data_csv,
            task=resolved_task,
            has_header=has_header,
            optimizer_config=optimizer_config,
            kernel_name=kernel_name,
            kernel_params=kernel_params,
            fixed_kernel_params=fixed_kernel_params,
            eigen_threshold=eigen_threshold,
            eval_csv=eval_csv,
        )
    finally:
        if file_sink is not None:
            logger.remove(file_sink)


def _train_and_report(
    ctx: RunContext,
    *,
    data_csv: Path,
    task: Task,
    has_header: bool,
    optimizer_config: GradientDescentConfig,
    kernel_name: str | None,
    kernel_params: dict[str, float],
    fixed_kernel_params: list[str],
    eigen_threshold: float | None,
    eval_csv: Path | None,
) -> dict[str, Any]:
    t0 = perf_counter()
    rows = read_rows(data_csv, has_header=has_header)
    ctx.add_timing("load_seconds", perf_counter() - t0)
    model = GaussianLinearModel.from_rows(rows, task, optimizer_config)

    kernel_info: dict[str, Any] | None = None
    if kernel_name is not None:
        kernel = create_kernel(kernel_name)
        kernel_config = KernelConfig.build(fixed=fixed_kernel_params, overrides=kernel_params)
        t0 = perf_counter()
        mapped = model.apply_kernel(kernel, config=kernel_config, threshold=eigen_threshold)
        ctx.add_timing("kernel_seconds", perf_counter() - t0)
        kernel_info = {
            "name": kernel_name,
            "state": kernel_config.effective_kernel(kernel).state,
            "config": kernel_config.to_dict(),
            "mapped_dim": int(mapped.shape[1]),
            "eigenvalues": model.feature_map.decomposition.eigenvalues,
        }

    t0 = perf_counter()
    weights = model.train()
    ctx.add_timing("train_seconds", perf_counter() - t0)

    features, labels = split_rows(rows)
    report: dict[str, Any] = {
        "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        "data_info": {
            "source": str(data_csv),
            "n_samples": int(features.shape[0]),
            "raw_dim": int(features.shape[1]),
            "dataset_signature": compute_dataset_signature(np.asarray(rows, dtype=np.float64)),
        },
        "task": task,
        "optimizer": {
            "gradient": model.optimizer.gradient.name,
            "updater": model.optimizer.updater.name,
            **model.optimizer.config.to_dict(),
            "iterations_run": model.optimizer.iterations_run,
            "loss_history": model.optimizer.loss_history,
        },
        "kernel": kernel_info,
        "parameters": weights,
        "train_eval": _evaluation_report(model, rows),
        "eval": None,
    }
    logger.info(f"Training finished after {model.optimizer.iterations_run} iterations")

    if eval_csv is not None:
        eval_rows = read_rows(eval_csv, has_header=has_header)
        report["eval"] = {"source": str(eval_csv), **_evaluation_report(model, eval_rows)}

    report_path = ctx.write_report("training_report.json", report)
    ctx.finalize(
        {
            "pipeline": "training",
            "pipeline_version": PIPELINE_VERSION,
            "timestamp_utc": datetime.now(timezone.utc).isoformat(),
            "data_csv": data_csv,
            "eval_csv": eval_csv,
            "has_header": has_header,
            "task": task,
            "optimizer": optimizer_config.to_dict(),
            "kernel_name": kernel_name,
            "kernel_params": kernel_params,
            "fixed_kernel_params": fixed_kernel_params,
            "eigen_threshold": eigen_threshold,
        }
    )

    return {
        "run_dir": str(ctx.run_dir),
        "report": str(report_path),
    }
