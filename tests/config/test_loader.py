"""
Tests for the report configuration: schema validation, YAML loading and
keyword options.
"""

from pathlib import Path

import pytest

from scorecard_report.config.loader import build_config, load_config, merge_options, save_config
from scorecard_report.config.schema import BINOMIAL_METRICS, ReportConfig
from scorecard_report.core.exceptions import ConfigurationError


PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class TestReportConfig:

    def test_defaults(self):
        config = ReportConfig()

        assert config.binomial_metric == list(BINOMIAL_METRICS)
        assert config.show_plot == ["ks", "roc"]
        assert config.bin_num == 10
        assert config.bin_type == "freq"
        assert config.odds0 == pytest.approx(1 / 19)
        assert config.points0 == 600
        assert config.pdo == 50
        assert config.basepoints_eq0 is False

    def test_metric_names_are_lowercased(self):
        config = ReportConfig(binomial_metric=["AUC", "Gini"])

        assert config.binomial_metric == ["auc", "gini"]

    def test_config_is_frozen(self):
        config = ReportConfig()

        with pytest.raises(Exception):
            config.pdo = 20


class TestBuildConfig:

    def test_unknown_key_rejected(self):
        with pytest.raises(ConfigurationError) as exc:
            build_config({"points_zero": 600})

        assert "points_zero" in exc.value.details["fields"]

    @pytest.mark.parametrize("raw", [
        {"pdo": 0},
        {"pdo": -10},
        {"odds0": 0},
        {"bin_type": "quantile"},
        {"binomial_metric": ["accuracy"]},
        {"show_plot": ["heatmap"]},
        {"stability": {"epsilon": -1}},
    ])
    def test_invalid_values_rejected(self, raw):
        with pytest.raises(ConfigurationError):
            build_config(raw)

    def test_passthrough_of_existing_config(self):
        config = ReportConfig(pdo=20)

        assert build_config(config) is config


class TestMergeOptions:

    def test_keyword_options_override(self):
        config = merge_options(ReportConfig(), {"pdo": 20, "stability": {"epsilon": 0.0}})

        assert config.pdo == 20
        assert config.stability.epsilon == 0.0
        # untouched nested values survive the merge
        assert config.stability.bin_num == 10

    def test_merge_on_none(self):
        assert merge_options(None, {"bin_num": 5}).bin_num == 5

    def test_unknown_option_rejected(self):
        with pytest.raises(ConfigurationError):
            merge_options(ReportConfig(), {"colour": "blue"})


class TestLoadConfig:

    def test_shipped_yaml_loads(self):
        config = load_config(str(PROJECT_ROOT / "config" / "report.yaml"))

        assert config.points0 == 600
        assert config.binning.unseen_category == "error"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_config(str(tmp_path / "nope.yaml"))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("pdo: [unclosed")

        with pytest.raises(ConfigurationError):
            load_config(str(path))

    def test_save_and_reload(self, tmp_path):
        path = tmp_path / "saved.yaml"
        save_config(ReportConfig(pdo=20, show_plot=["roc"]), str(path))

        reloaded = load_config(str(path))

        assert reloaded.pdo == 20
        assert reloaded.show_plot == ["roc"]
