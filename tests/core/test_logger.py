"""
Tests for Logging Utilities
"""

import logging

import pytest

from scorecard_report.config.schema import LoggingConfig
from scorecard_report.core.context import StageContext
from scorecard_report.core.exceptions import BinningError
from scorecard_report.core.logger import RunLogger, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)


@pytest.mark.usefixtures("restore_root_logger")
class TestSetupLogging:

    def test_file_handler_writes(self, tmp_path):
        log_file = tmp_path / "logs" / "report.log"

        setup_logging(LoggingConfig(level="INFO"), log_file=str(log_file))
        logging.getLogger("scorecard_report.test").info("hello report")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert log_file.exists()
        assert "hello report" in log_file.read_text()

    def test_level_override(self):
        setup_logging(LoggingConfig(level="INFO"), level="debug")

        assert logging.getLogger().level == logging.DEBUG

    def test_repeated_setup_replaces_handlers(self):
        setup_logging()
        setup_logging()

        assert len(logging.getLogger().handlers) == 1

    def test_third_party_loggers_quieted(self):
        setup_logging(level="DEBUG")

        assert logging.getLogger("matplotlib").level == logging.WARNING
        assert logging.getLogger("statsmodels").level == logging.WARNING


class TestRunLogger:

    def test_unbound_has_no_prefix(self, caplog):
        log = RunLogger("scorecard_report.plain")

        with caplog.at_level(logging.INFO, logger="scorecard_report.plain"):
            log.dataset_stats("train", 700, 7, 0.3)

        assert caplog.records[-1].getMessage() == "DATA | train: 700 rows, 7 features, bad rate 30.00%"

    def test_bound_prefix(self, caplog):
        log = RunLogger("scorecard_report.ctx")
        log.bind(StageContext(run_id="abc").advance("model performance"))

        with caplog.at_level(logging.INFO, logger="scorecard_report.ctx"):
            log.metric("train.AUC", 0.75)

        assert "[abc 1-model performance] METRIC | train.AUC: 0.75" in caplog.text

    def test_stage_failed(self, caplog):
        log = RunLogger("scorecard_report.fail")
        error = BinningError("unseen category").annotate("woe binning", "test")

        with caplog.at_level(logging.ERROR, logger="scorecard_report.fail"):
            log.stage_failed(error)

        assert "FAILED at stage 'woe binning' (dataset 'test'): unseen category" in caplog.text

    def test_stage_failed_for_library_error(self, caplog):
        log = RunLogger("scorecard_report.raw")

        with caplog.at_level(logging.ERROR, logger="scorecard_report.raw"):
            log.stage_failed(KeyError("x"), stage="gains table", dataset="oot")

        assert "FAILED at stage 'gains table' (dataset 'oot'): KeyError: 'x'" in caplog.text
