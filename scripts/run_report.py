#!/usr/bin/env python3
"""
Scorecard Report CLI

Builds the scorecard modeling report workbook from one or more tables.

Usage:
    # Single table, split 70/30 with seed 618:
    python scripts/run_report.py --input data/germancredit.csv --target creditability

    # Named datasets (first one is the reference):
    python scripts/run_report.py --target creditability \\
        --input train=data/train.parquet test=data/test.parquet oot=data/oot.parquet

    # Supplied breaks and scaling overrides:
    python scripts/run_report.py --input data/germancredit.csv --target creditability \\
        --breaks config/breaks.yaml --points0 600 --pdo 20

    # Synthetic demo data:
    python scripts/run_report.py --sample
"""

import sys
import argparse
import logging
from pathlib import Path
from datetime import datetime
from typing import Dict, List, Optional

import pandas as pd
import yaml

# Add project root to path
project_root = str(Path(__file__).resolve().parent.parent)
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from scorecard_report.config.loader import load_config, save_config
from scorecard_report.config.schema import ReportConfig
from scorecard_report.core.exceptions import ConfigurationError, PipelineException
from scorecard_report.core.logger import setup_logging
from scorecard_report.data.sample import TARGET, make_credit_sample
from scorecard_report.pipeline import ScorecardReportPipeline


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Scorecard modeling report (WoE + GLM + Scorecard)",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    # Config file
    parser.add_argument(
        "--config",
        default="config/report.yaml",
        help="Path to YAML config file (ignored if missing)",
    )

    # Data
    parser.add_argument(
        "--input",
        nargs="+",
        default=None,
        help="csv/parquet paths or name=path pairs; several inputs are keyed by file stem or name, first is the reference",
    )
    parser.add_argument(
        "--sample",
        action="store_true",
        default=False,
        help="Use a synthetic credit sample instead of --input",
    )
    parser.add_argument(
        "--target",
        default=None,
        help="Name of the label column",
    )
    parser.add_argument(
        "--features",
        nargs="+",
        default=None,
        help="Feature columns (default: every non-label column)",
    )
    parser.add_argument(
        "--positive",
        default="bad|1",
        help="Positive-class tokens of the label, separated by |",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=618,
        help="Split seed for a single input table",
    )
    parser.add_argument(
        "--no-split",
        action="store_true",
        default=False,
        help="Keep a single input table whole",
    )

    # Binning
    parser.add_argument(
        "--breaks",
        default=None,
        help="YAML file mapping feature -> list of breaks",
    )
    parser.add_argument(
        "--special-values",
        default=None,
        help="YAML file with a list, or a feature -> list mapping",
    )

    # Report options
    parser.add_argument("--metrics", nargs="+", default=None, help="binomial_metric")
    parser.add_argument("--plots", nargs="+", default=None, help="show_plot")
    parser.add_argument("--bin-num", type=int, default=None, help="Gains table buckets")
    parser.add_argument("--bin-type", choices=["freq", "width"], default=None, help="Gains bucketing")
    parser.add_argument("--odds0", type=float, default=None, help="Bad:good odds at points0")
    parser.add_argument("--points0", type=float, default=None, help="Score at odds0")
    parser.add_argument("--pdo", type=float, default=None, help="Points to double the odds")
    parser.add_argument(
        "--basepoints-eq0",
        action="store_true",
        default=False,
        help="Spread base points over the features",
    )

    # Output
    parser.add_argument(
        "--save-report",
        default="report",
        help="Report file name stem",
    )
    parser.add_argument(
        "--output-dir",
        default=None,
        help="Directory for the report and logs",
    )

    # Logging
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Overrides logging.level of the config",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Log file (default: <output-dir>/logs/scorecard_report_<timestamp>.log)",
    )

    return parser.parse_args(argv)


def _load_report_config(args: argparse.Namespace) -> ReportConfig:
    """Load YAML and apply CLI overrides, returning a ReportConfig."""
    overrides: Dict = {}
    if args.metrics is not None:
        overrides["binomial_metric"] = args.metrics
    if args.plots is not None:
        overrides["show_plot"] = args.plots
    if args.bin_num is not None:
        overrides["bin_num"] = args.bin_num
    if args.bin_type is not None:
        overrides["bin_type"] = args.bin_type
    if args.odds0 is not None:
        overrides["odds0"] = args.odds0
    if args.points0 is not None:
        overrides["points0"] = args.points0
    if args.pdo is not None:
        overrides["pdo"] = args.pdo
    if args.basepoints_eq0:
        overrides["basepoints_eq0"] = True
    if args.output_dir is not None:
        overrides["output"] = {"dir": args.output_dir}
    if args.log_level is not None or args.log_file is not None:
        overrides["logging"] = {
            k: v for k, v in (("level", args.log_level), ("file", args.log_file)) if v is not None
        }

    yaml_path = args.config if args.config and Path(args.config).exists() else None
    return load_config(yaml_path, overrides=overrides)


def _read_table(path: str) -> pd.DataFrame:
    suffix = Path(path).suffix.lower()
    if suffix not in (".parquet", ".csv", ".txt"):
        raise ConfigurationError(f"Unsupported input format: {path}", details={"suffix": suffix})
    try:
        if suffix == ".parquet":
            return pd.read_parquet(path)
        return pd.read_csv(path)
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Cannot read input table: {path}", details={"path": path}, cause=e)


def _read_inputs(specs: List[str]):
    """A single DataFrame, or an ordered name -> DataFrame mapping."""
    if len(specs) == 1 and "=" not in specs[0]:
        return _read_table(specs[0])
    tables = {}
    for spec in specs:
        if "=" in spec:
            name, path = spec.split("=", 1)
        else:
            name, path = Path(spec).stem, spec
        if name in tables:
            raise ConfigurationError(f"Duplicate dataset name {name!r}", details={"input": spec})
        tables[name] = _read_table(path)
    return tables


def _read_yaml(path: Optional[str]):
    if path is None:
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot read YAML file: {path}", details={"path": path}, cause=e)


def _setup_logging(config: ReportConfig) -> str:
    """Configure logging and return the log file path."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_dir = Path(config.output.dir) / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = config.logging.file or str(log_dir / f"scorecard_report_{timestamp}.log")

    setup_logging(config.logging, log_file=log_file)
    return log_file


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    config = _load_report_config(args)
    log_file = _setup_logging(config)

    logger = logging.getLogger("run_report")
    logger.info("Scorecard Report")
    logger.info("Config: %s", args.config)
    logger.info("Log file: %s", log_file)

    if args.sample:
        dt = make_credit_sample(n=1000, seed=42)
        target = args.target or TARGET
    elif args.input:
        try:
            dt = _read_inputs(args.input)
        except PipelineException as e:
            logger.error("Cannot read input: %s", e)
            return 2
        target = args.target
    else:
        logger.error("Either --input or --sample is required")
        return 2

    if target is None:
        logger.error("--target is required with --input")
        return 2

    try:
        breaks_list = _read_yaml(args.breaks)
        special_values = _read_yaml(args.special_values)
    except PipelineException as e:
        logger.error("Cannot read binning input: %s", e)
        return 2

    pipeline = ScorecardReportPipeline(config)
    try:
        path = pipeline.run(
            dt,
            target,
            x=args.features,
            breaks_list=breaks_list,
            special_values=special_values,
            seed=None if args.no_split else args.seed,
            save_report=args.save_report,
            positive=args.positive,
        )
    except PipelineException as e:
        logger.error("Report failed: %s", e)
        return 1

    config_path = str(Path(path).with_suffix(".yaml"))
    save_config(config, config_path)

    print(f"\n{'=' * 60}")
    print(f"Datasets: {', '.join(pipeline.datasets)}")
    print(f"Features: {len(pipeline.features)}")
    if pipeline.stability is not None:
        for name, value in pipeline.stability.psi.items():
            print(f"  PSI {name}: {value:.4f}")
    print(f"Excel report: {path}")
    print(f"Config: {config_path}")
    print(f"Log file: {log_file}")
    print(f"{'=' * 60}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
