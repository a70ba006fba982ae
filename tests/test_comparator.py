# tests/test_comparator.py
"""Tests for the comparison against the human data."""

import pytest
from self_control import (
    AFTER,
    BEFORE,
    GOOD_CONVERGENCE,
    REFERENCE_DATA,
    SIMULATION_STRONGER,
    OutcomeRecord,
    compare,
    convergence_verdict,
    default_parameters,
    mechanistic_explanation,
    percent_change,
    significant_changes,
    simulate,
)


def report_for(interpretation_id, **overrides):
    params = default_parameters(interpretation_id)
    params.update(overrides)
    outcomes = simulate(interpretation_id, params)
    return compare(interpretation_id, params, default_parameters(interpretation_id), outcomes)


class TestSignificantChanges:
    """Relative change must exceed 10% strictly."""

    def test_exact_ten_percent_is_not_flagged(self):
        defaults = default_parameters("explicit-implicit")
        params = dict(defaults, benefitCoefficient=1.1)
        assert significant_changes("explicit-implicit", params, defaults) == []

    def test_exact_ten_percent_of_inexact_default_is_not_flagged(self):
        defaults = default_parameters("explicit-implicit")
        params = dict(defaults, achievementDeficit=0.77)
        assert significant_changes("explicit-implicit", params, defaults) == []

    def test_eleven_percent_is_flagged(self):
        defaults = default_parameters("explicit-implicit")
        params = dict(defaults, benefitCoefficient=1.11)
        changes = significant_changes("explicit-implicit", params, defaults)
        assert len(changes) == 1
        change = changes[0]
        assert change.key == "benefitCoefficient"
        assert change.label == "Benefit Coefficient"
        assert change.group == "Utility Parameters"
        assert change.percent_change == pytest.approx(11.0)
        assert change.direction == "increased"

    def test_decrease_is_flagged_with_direction(self):
        defaults = default_parameters("explicit-implicit")
        params = dict(defaults, benefitCoefficient=0.89)
        (change,) = significant_changes("explicit-implicit", params, defaults)
        assert change.direction == "decreased"
        assert change.percent_change == pytest.approx(-11.0)

    def test_unchanged_parameters_are_not_flagged(self):
        defaults = default_parameters("goal-goal")
        assert significant_changes("goal-goal", dict(defaults), defaults) == []

    def test_changes_keep_parameter_order(self):
        defaults = default_parameters("goal-goal")
        params = dict(defaults, granolaActionCost=0.4, achievementStimulusBefore=1.0)
        keys = [c.key for c in significant_changes("goal-goal", params, defaults)]
        assert keys == ["achievementStimulusBefore", "granolaActionCost"]

    def test_percent_change_rounding(self):
        assert percent_change(1.1, 1.0) == 10.0
        assert percent_change(0.9, 0.7) == pytest.approx(28.571429)


class TestConvergenceVerdict:
    def test_gaps_of_exactly_five_give_no_verdict(self):
        assert convergence_verdict(5.0, 5.0) is None

    def test_gaps_below_five_give_good_convergence(self):
        assert convergence_verdict(4.9, 4.9) == GOOD_CONVERGENCE

    def test_negative_gaps_use_magnitude(self):
        assert convergence_verdict(-4.9, 1.11) == GOOD_CONVERGENCE

    def test_simulation_stronger(self):
        assert convergence_verdict(10.0, 4.0) == SIMULATION_STRONGER

    def test_simulation_exactly_margin_above_human_gives_no_verdict(self):
        assert convergence_verdict(10.0, 5.0) is None

    def test_human_gap_large_and_simulation_small(self):
        assert convergence_verdict(1.0, 8.0) is None


class TestMechanisticExplanation:
    def test_flagship_unchanged(self):
        defaults = default_parameters("goal-goal")
        text = mechanistic_explanation("goal-goal", defaults, defaults)
        assert text.startswith("Utility-based subgoal competition")
        assert "granola achievement satisfaction" not in text

    def test_flagship_changed_extends_paragraph(self):
        defaults = default_parameters("goal-goal")
        params = dict(defaults, granolaAchievementSat=1.0)
        text = mechanistic_explanation("goal-goal", params, defaults)
        assert text.endswith(
            "Changes in granola achievement satisfaction alter the utility advantage of healthy choices."
        )

    def test_small_flagship_change_still_extends(self):
        # any deviation counts here, not only significant ones
        defaults = default_parameters("explicit-implicit")
        params = dict(defaults, achievementDeficit=0.71)
        text = mechanistic_explanation("explicit-implicit", params, defaults)
        assert "achievement deficit" in text

    def test_other_parameter_does_not_extend(self):
        defaults = default_parameters("desire-goal")
        params = dict(defaults, costCoefficient=0.3)
        text = mechanistic_explanation("desire-goal", params, defaults)
        assert text == "The temporal modulation of achievement drives creates differential explicitness levels."


class TestCompare:
    def test_goal_goal_defaults(self):
        report = report_for("goal-goal")
        assert report.significant_changes == ()

        before, after = report.differences
        assert before.condition == BEFORE
        assert before.granola == pytest.approx(108 - 102.19)
        assert before.chocolate == pytest.approx(69 - 74.06)
        assert after.condition == AFTER
        assert after.granola == pytest.approx(95 - 94.22)
        assert after.chocolate == pytest.approx(93 - 93.11)

        assert report.gaps.human_before == pytest.approx(28.13)
        assert report.gaps.simulation_before == 39
        assert report.gaps.human_after == pytest.approx(1.11)
        assert report.gaps.simulation_after == 2
        assert report.verdict == GOOD_CONVERGENCE

    def test_strong_simulation_gap(self):
        report = report_for(
            "goal-goal",
            achievementStimulusBefore=1.0,
            achievementStimulusAfter=0.7,
            granolaAchievementSat=1.0,
            chocolateFoodSat=0.6,
            granolaActionCost=0.1,
            chocolateActionCost=0.2,
        )
        assert report.gaps.simulation_after == 35
        assert report.verdict == SIMULATION_STRONGER

    def test_custom_reference(self):
        reference = (
            OutcomeRecord(BEFORE, granola=100, chocolate=80),
            OutcomeRecord(AFTER, granola=100, chocolate=80),
        )
        params = default_parameters("desire-goal")
        outcomes = simulate("desire-goal", params)
        report = compare("desire-goal", params, params, outcomes, reference)
        assert report.gaps.human_after == 20
        assert report.verdict is None

    def test_reference_data_is_published_means(self):
        assert [(r.granola, r.chocolate) for r in REFERENCE_DATA] == [(102.19, 74.06), (94.22, 93.11)]


class TestReportMarkdown:
    def test_sections_for_defaults(self):
        text = report_for("goal-goal").to_markdown()
        assert text.startswith("## Parameter Configuration Analysis\n")
        assert "### Significant Parameter Changes:" not in text
        assert "**Before Choice Condition:**" in text
        assert "• Granola bars: +5.8 points difference" in text
        assert "• Chocolate bars: -5.1 points difference" in text
        assert "• Granola bars: +0.8 points difference" in text
        assert "• Chocolate bars: -0.1 points difference" in text
        assert "• Human preference difference (Before): 28.1 points" in text
        assert "• Simulation preference difference (Before): 39.0 points" in text
        assert "• Human preference difference (After): 1.1 points" in text
        assert "• Simulation preference difference (After): 2.0 points" in text
        assert "### Mechanistic Explanation (Goal-Goal):" in text
        assert "### Convergence Analysis:" in text
        assert GOOD_CONVERGENCE in text

    def test_significant_changes_listed(self):
        text = report_for("explicit-implicit", achievementDeficit=0.9).to_markdown()
        assert "### Significant Parameter Changes:" in text
        assert "• **Achievement Deficit** (Drive Parameters): increased by 28.6%" in text
        assert "### Mechanistic Explanation (Explicit-Implicit):" in text
        assert "Changes in achievement deficit affect the motivation for explicit rule engagement." in text

    def test_never_both_verdicts(self):
        for overrides in ({}, {"granolaAchievementSat": 1.0}, {"chocolateFoodSat": 0.6, "granolaActionCost": 0.1}):
            text = report_for("goal-goal", **overrides).to_markdown()
            assert not (GOOD_CONVERGENCE in text and SIMULATION_STRONGER in text)
