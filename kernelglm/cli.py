from __future__ import annotations

import argparse
from pathlib import Path
import sys

from .errors import KernelGLMError
from .kernels.library import KERNELS, registered_kernels
from .optimization.gradient_descent import GradientDescentConfig
from .pipeline import run_training_pipeline


def _execution_root() -> Path:
    return Path.cwd().resolve()


def _is_filesystem_root(path: Path) -> bool:
    return path == path.parent


def _resolve_output_root(output_root: Path, caller: str) -> Path:
    root = _execution_root()
    candidate = output_root.expanduser()
    resolved = (candidate if candidate.is_absolute() else root / candidate).resolve()
    if resolved == root or _is_filesystem_root(resolved):
        # Never write run artifacts directly at execution root or filesystem root.
        return (root / "runs" / caller).resolve()
    return resolved


def parse_kernel_params(entries: list[str]) -> dict[str, float]:
    params: dict[str, float] = {}
    for entry in entries:
        if "=" not in entry:
            raise ValueError(f"Invalid --kernel-param entry '{entry}'. Expected format name=value")
        name, value = entry.split("=", 1)
        if not name:
            raise ValueError(f"Invalid kernel parameter name in entry '{entry}'")
        try:
            params[name] = float(value)
        except ValueError as exc:
            raise ValueError(f"Non-numeric value in --kernel-param entry '{entry}'") from exc
    return params


def _cmd_train(args: argparse.Namespace) -> int:
    output_root = _resolve_output_root(args.output_root, "train")
    optimizer_config = GradientDescentConfig(
        num_iterations=args.max_iterations,
        step_size=args.learning_rate,
        reg_param=args.reg_param,
        convergence_tol=args.convergence_tol,
    )
    result = run_training_pipeline(
        data_csv=args.data_csv,
        task=args.task,
        has_header=args.has_header,
        optimizer_config=optimizer_config,
        kernel_name=args.kernel,
        kernel_params=parse_kernel_params(args.kernel_param),
        fixed_kernel_params=list(args.fix_param),
        eigen_threshold=args.eigen_threshold,
        eval_csv=args.eval_csv,
        output_root=output_root,
        run_id=args.run_id,
        log_level=args.log_level,
    )

    print("Run complete")
    print(f"Run dir: {result['run_dir']}")
    print(f"Report: {result['report']}")
    return 0


def _cmd_kernels(args: argparse.Namespace) -> int:
    for name in registered_kernels():
        print(f"{name}: {', '.join(KERNELS[name]().hyperparameters)}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="kernelglm unified CLI")
    sub = parser.add_subparsers(dest="command", required=True)

    train = sub.add_parser("train", help="Train a Gaussian linear model, optionally in a kernel feature space")
    train.add_argument("--data-csv", type=Path, required=True, help="Training CSV; last column is the label")
    train.add_argument("--task", choices=["classification", "regression"], required=True)
    train.add_argument("--has-header", action="store_true", help="Skip the first CSV row")
    train.add_argument("--eval-csv", type=Path, default=None, help="Optional held-out CSV for evaluation")
    train.add_argument("--output-root", type=Path, default=Path("runs"), help="Output root for run artifacts")
    train.add_argument("--run-id", type=str, default=None, help="Optional fixed run id")
    train.add_argument("--log-level", default="INFO")

    train.add_argument("--max-iterations", type=int, default=100)
    train.add_argument("--learning-rate", type=float, default=0.001)
    train.add_argument("--reg-param", type=float, default=0.0)
    train.add_argument("--convergence-tol", type=float, default=None)

    train.add_argument("--kernel", choices=registered_kernels(), default=None)
    train.add_argument("--kernel-param", nargs="+", default=[], help="Kernel hyperparameters as name=value")
    train.add_argument("--fix-param", nargs="+", default=[], help="Kernel hyperparameters held fixed")
    train.add_argument("--eigen-threshold", type=float, default=None, help="Eigenvalue cutoff for the feature map")
    train.set_defaults(func=_cmd_train)

    kernels = sub.add_parser("kernels", help="List registered kernels and their hyperparameters")
    kernels.set_defaults(func=_cmd_kernels)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return int(args.func(args))
    except (KernelGLMError, FileNotFoundError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
