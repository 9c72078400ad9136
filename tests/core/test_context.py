"""
Tests for StageContext and SheetProgress.
"""

import dataclasses

import pytest

from scorecard_report.core.context import SheetProgress, StageContext


class TestStageContext:

    def test_advance_increments_and_resets_dataset(self):
        ctx = StageContext(run_id="r1").for_dataset("train")

        nxt = ctx.advance("woe binning")

        assert nxt.index == 1
        assert nxt.stage == "woe binning"
        assert nxt.dataset is None
        # the original is unchanged
        assert ctx.index == 0
        assert ctx.dataset == "train"

    def test_label_includes_dataset(self):
        ctx = StageContext(run_id="r1").advance("scorecard scaling").for_dataset("test")

        assert ctx.label == "1-scorecard scaling[test]"

    def test_is_frozen(self):
        ctx = StageContext(run_id="r1")

        with pytest.raises(dataclasses.FrozenInstanceError):
            ctx.index = 5


class TestSheetProgress:

    def test_message_format(self):
        progress = SheetProgress(number=3, sheet="model performance", run_id="r1")

        assert progress.message == "sheet3-model performance"
