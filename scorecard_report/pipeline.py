"""
Scorecard Report Pipeline

Orchestrates a full report run over one or more named datasets:

1. Prepare datasets (split, label normalisation); first = reference
2. Fit bins on the reference, WoE-encode every dataset with the same bins
3. Fit the binomial GLM on the reference encoded dataset
4. Scale the model into a scorecard, score every dataset
5. Performance metrics and curves per dataset
6. Score PSI of every dataset against the reference (more than one dataset)
7. Gains table over the pooled scores
8. Assemble and save the workbook

Every stage runs inside a stage scope: a failing stage annotates the
exception with its stage and dataset, logs it, and re-raises it. Nothing is
written to disk before the last stage.
"""

from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Union
from contextlib import contextmanager
from datetime import datetime
import time
import uuid

import pandas as pd

from scorecard_report.binning.coordinator import BinningCoordinator, BinningSet
from scorecard_report.binning.plots import render_dataset
from scorecard_report.config.loader import build_config, load_config, merge_options
from scorecard_report.config.schema import ReportConfig
from scorecard_report.core.context import SheetProgress, StageContext
from scorecard_report.core.exceptions import PipelineException
from scorecard_report.core.logger import RunLogger
from scorecard_report.data.preparer import Dataset, DatasetPreparer
from scorecard_report.evaluation.gains import GainsTableBuilder
from scorecard_report.evaluation.performance import PerformanceEvaluator
from scorecard_report.evaluation.stability import StabilityAnalyzer, StabilityReport
from scorecard_report.model.scorecard import ScoreCard, ScoreScaler
from scorecard_report.model.trainer import Model, ModelTrainer
from scorecard_report.reporting.assembler import ReportArtifacts, ReportAssembler, dataset_info_table


N_STAGES = 8


class ScorecardReportPipeline:
    """End-to-end scorecard report.

    Parameters
    ----------
    config : ReportConfig, optional
        Frozen run configuration. If ``None``, defaults are used.
    on_progress : callable, optional
        Called with a ``SheetProgress`` after every completed sheet.

    Every ``run`` starts from fresh components, so one instance can produce
    several reports; the artefacts of the last run stay on the instance.
    """

    def __init__(
        self,
        config: Optional[ReportConfig] = None,
        on_progress: Optional[Callable[[SheetProgress], None]] = None,
    ):
        self.config = config or ReportConfig()
        self.on_progress = on_progress
        self.log = RunLogger(__name__)
        self._reset()

    def _reset(self) -> None:
        """Fresh components and empty artefacts; every run starts from here."""
        self.preparer = DatasetPreparer(self.config)
        self.coordinator = BinningCoordinator(self.config)
        self.trainer = ModelTrainer(self.config)
        self.scaler = ScoreScaler(self.config)
        self.evaluator = PerformanceEvaluator(self.config)
        self.analyzer = StabilityAnalyzer(self.config)
        self.gains_builder = GainsTableBuilder(self.config)
        self.assembler = ReportAssembler(self.config, on_progress=self.on_progress)

        # Runtime artefacts (populated during run)
        self._failed_dataset: Optional[str] = None
        self.datasets: Dict[str, Dataset] = {}
        self.features: List[str] = []
        self.binning: Optional[BinningSet] = None
        self.encoded: Dict[str, pd.DataFrame] = {}
        self.model: Optional[Model] = None
        self.coefficients: Optional[pd.DataFrame] = None
        self.predictions: Dict[str, tuple] = {}
        self.scorecard: Optional[ScoreCard] = None
        self.scores: Dict[str, pd.Series] = {}
        self.performance: Optional[pd.DataFrame] = None
        self.stability: Optional[StabilityReport] = None
        self.gains: Optional[pd.DataFrame] = None
        self.report_path: Optional[str] = None

    # ------------------------------------------------------------------
    # Stage scopes
    # ------------------------------------------------------------------

    @contextmanager
    def _stage(self, context: StageContext) -> Iterator[None]:
        """Log a stage and annotate any pipeline error raised inside it."""
        start = time.time()
        self.log.bind(context)
        self.log.stage_start(N_STAGES)
        try:
            yield
        except PipelineException as e:
            e.annotate(context.stage, context.dataset or e.details.get("dataset"))
            self.log.stage_failed(e)
            raise
        except Exception as e:
            self.log.stage_failed(e, stage=context.stage, dataset=context.dataset or self._failed_dataset)
            raise
        self.log.stage_complete(time.time() - start)

    @contextmanager
    def _dataset_scope(self, context: StageContext) -> Iterator[None]:
        """Attach the current dataset to an error raised inside the scope."""
        try:
            yield
        except PipelineException as e:
            e.annotate(context.stage, context.dataset)
            raise
        except Exception:
            self._failed_dataset = context.dataset
            raise

    # ------------------------------------------------------------------
    # Public entry point
    # ------------------------------------------------------------------

    def run(
        self,
        dt: Union[pd.DataFrame, Mapping[str, pd.DataFrame]],
        y: str,
        x: Optional[List[str]] = None,
        breaks_list: Optional[Mapping[str, Sequence[Any]]] = None,
        special_values: Optional[Any] = None,
        seed: Optional[int] = 618,
        save_report: str = "report",
        positive: Union[str, Sequence[Any]] = "bad|1",
    ) -> str:
        """
        Run every stage and save the report.

        Returns:
            Path of the saved workbook
        """
        self._reset()
        run_id = f"{datetime.now().strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:6]}"
        ctx = StageContext(run_id=run_id)
        self.log.bind(ctx)

        self.log.info("=" * 60)
        self.log.info(f"Scorecard report, run_id={run_id}")
        self.log.info("=" * 60)

        # 1. Datasets
        ctx = ctx.advance("dataset preparation")
        with self._stage(ctx):
            self.datasets = self.preparer.prepare(dt, y, features=x, seed=seed, positive=positive)
            self.features = self.preparer.resolve_features(self.datasets, y, x)
            self.preparer.check_features(self.datasets, y, self.features)
            for name, ds in self.datasets.items():
                self.log.dataset_stats(name, len(ds), len(self.features), float(ds.frame[y].mean()))
        reference = next(iter(self.datasets.values()))

        # 2. Binning
        ctx = ctx.advance("woe binning")
        with self._stage(ctx):
            self.binning = self.coordinator.fit(
                reference, y, self.features, breaks_list=breaks_list, special_values=special_values
            )
            for name, ds in self.datasets.items():
                with self._dataset_scope(ctx.for_dataset(name)):
                    self.encoded[name] = self.coordinator.apply(ds)

        # 3. Model
        ctx = ctx.advance("model fitting")
        with self._stage(ctx):
            self.model = self.trainer.fit(self.encoded[reference.name], y, self.features)
            self.coefficients = self.trainer.diagnostics(
                self.model, self.encoded[reference.name], self.binning, reference.frame
            )
            self.predictions = {
                name: (self.trainer.predict(self.model, enc), enc[y].to_numpy())
                for name, enc in self.encoded.items()
            }

        # 4. Scorecard
        ctx = ctx.advance("scorecard scaling")
        with self._stage(ctx):
            self.scorecard = self.scaler.fit(self.binning, self.model)
            for name, ds in self.datasets.items():
                with self._dataset_scope(ctx.for_dataset(name)):
                    self.scores[name] = self.scaler.score(self.scorecard, self.binning, ds)
        labels = {name: ds.frame[y].to_numpy() for name, ds in self.datasets.items()}

        # 5. Performance
        ctx = ctx.advance("model performance")
        with self._stage(ctx):
            self.performance = self.evaluator.evaluate(self.predictions)
            curves = self.evaluator.plot(self.predictions)
            for row in self.performance.to_dict("records"):
                for metric, value in row.items():
                    if metric != "dataset":
                        self.log.metric(f"{row['dataset']}.{metric}", round(float(value), 4))

        # 6. Stability
        ctx = ctx.advance("population stability")
        stability_plots: Dict[str, bytes] = {}
        with self._stage(ctx):
            if len(self.datasets) > 1:
                self.stability = self.analyzer.analyze(self.scores, labels)
                stability_plots = self.analyzer.plot(self.stability)
            else:
                self.log.info("Single dataset: stability skipped")

        # 7. Gains
        ctx = ctx.advance("gains table")
        with self._stage(ctx):
            self.gains = self.gains_builder.build(self.scores, labels)

        # 8. Report
        ctx = ctx.advance("report assembly")
        with self._stage(ctx):
            binning_tables = {}
            binning_plots = {}
            for name, ds in self.datasets.items():
                with self._dataset_scope(ctx.for_dataset(name)):
                    binning_tables[name] = self.coordinator.describe(ds)
                    binning_plots[name] = render_dataset(
                        binning_tables[name], name, dpi=self.config.output.plot_dpi
                    )

            artifacts = ReportArtifacts(
                dataset_info=dataset_info_table({n: d.frame for n, d in self.datasets.items()}, y),
                reference=reference.name,
                coefficients=self.coefficients,
                performance=self.performance,
                curves=curves,
                n_curves=len(self.config.show_plot),
                binning_tables=binning_tables,
                binning_plots=binning_plots,
                scorecard=self.scorecard,
                gains=self.gains,
                stability=self.stability,
                stability_plots=stability_plots,
            )
            self.report_path = self.assembler.assemble(artifacts, save_report, ctx)

        self.log.info(f"Report complete: {self.report_path}")
        self.log.bind(None)
        return self.report_path


def resolve_config(
    config: Optional[Union[ReportConfig, Mapping[str, Any], str]] = None,
    options: Optional[Mapping[str, Any]] = None,
) -> ReportConfig:
    """
    Build the run configuration from a ReportConfig, a mapping or a YAML
    path, with keyword options applied on top.
    """
    if config is None or isinstance(config, ReportConfig):
        base = config
    elif isinstance(config, str):
        base = load_config(config)
    else:
        base = build_config(dict(config))
    if options:
        return merge_options(base, dict(options))
    return base or ReportConfig()


def report(
    dt: Union[pd.DataFrame, Mapping[str, pd.DataFrame]],
    y: str,
    x: Optional[List[str]] = None,
    breaks_list: Optional[Mapping[str, Sequence[Any]]] = None,
    special_values: Optional[Any] = None,
    seed: Optional[int] = 618,
    save_report: str = "report",
    positive: Union[str, Sequence[Any]] = "bad|1",
    config: Optional[Union[ReportConfig, Mapping[str, Any], str]] = None,
    on_progress: Optional[Callable[[SheetProgress], None]] = None,
    **options: Any,
) -> str:
    """
    Build a scorecard modeling report workbook.

    Args:
        dt: A DataFrame (split by ``seed``) or a mapping name -> DataFrame
        y: Label column
        x: Feature columns (default: every non-label column)
        breaks_list: Feature -> breaks, e.g. ``{"age": [26, 35, 40]}``
        special_values: Values given their own bin (list, or feature -> list)
        seed: Split seed for a single DataFrame; None keeps it whole
        save_report: File name stem; a timestamp and ``.xlsx`` are appended
        positive: Positive-class tokens of the label, e.g. ``"bad|1"``
        config: ReportConfig, mapping or YAML path
        on_progress: Called after every completed sheet
        **options: binomial_metric, show_plot, bin_num, bin_type, odds0,
            points0, pdo, basepoints_eq0 (or any other config key)

    Returns:
        Path of the saved workbook

    Raises:
        ConfigurationError: For unknown or invalid options
    """
    cfg = resolve_config(config, options)
    pipeline = ScorecardReportPipeline(cfg, on_progress=on_progress)
    return pipeline.run(
        dt,
        y,
        x=x,
        breaks_list=breaks_list,
        special_values=special_values,
        seed=seed,
        save_report=save_report,
        positive=positive,
    )
