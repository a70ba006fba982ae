# self_control.py
# Core of the self-control simulator:
# - interpretation registry (defaults + slider metadata + canned text)
# - three closed-form simulators (before / after choice)
# - comparator against the Myrseth et al. (2009) human data
# - immutable session snapshots and the transitions the UI drives
# - JSON presets and a cross-interpretation comparison table

import json
import logging
import math
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import pandas as pd

logger = logging.getLogger(__name__)


# -----------------------------
# Constants
# -----------------------------
BEFORE = "Before Choice"
AFTER = "After Choice"
CONDITIONS = (BEFORE, AFTER)

SIGNIFICANT_CHANGE_PERCENT = 10.0
CONVERGENCE_MARGIN = 5.0

GOOD_CONVERGENCE = "✓ Both human and simulation show good convergence in After Choice condition."
SIMULATION_STRONGER = "⚠ Simulation shows stronger preference differences than humans in After Choice condition."

HUMAN_DATA_SOURCE = "Myrseth et al., 2009"


class UnknownInterpretationError(KeyError):
    pass


# -----------------------------
# Data structures
# -----------------------------
@dataclass(frozen=True)
class OutcomeRecord:
    condition: str
    granola: float
    chocolate: float

    @property
    def gap(self) -> float:
        # preference gap: granola minus chocolate
        return self.granola - self.chocolate

    def as_dict(self) -> Dict[str, Any]:
        return {"condition": self.condition, "granola": self.granola, "chocolate": self.chocolate}


REFERENCE_DATA: Tuple[OutcomeRecord, OutcomeRecord] = (
    OutcomeRecord(BEFORE, granola=102.19, chocolate=74.06),
    OutcomeRecord(AFTER, granola=94.22, chocolate=93.11),
)


@dataclass(frozen=True)
class ParameterSpec:
    key: str
    label: str
    group: str
    min: float
    max: float
    step: float

    def clamp(self, value: float) -> float:
        return float(max(self.min, min(self.max, value)))


@dataclass(frozen=True)
class Interpretation:
    id: str
    title: str
    description: str
    defaults: Dict[str, float]
    parameters: Tuple[ParameterSpec, ...]
    run_explanation: str
    mechanism: str
    flagship_parameter: str
    flagship_note: str
    parameter_effects: Dict[str, str] = field(default_factory=dict)

    def spec(self, key: str) -> Optional[ParameterSpec]:
        for p in self.parameters:
            if p.key == key:
                return p
        return None


# -----------------------------
# Interpretation registry
# -----------------------------
INTERPRETATIONS: Dict[str, Interpretation] = {
    "explicit-implicit": Interpretation(
        id="explicit-implicit",
        title="Explicit-Implicit Interpretation",
        description=(
            "Models self-control as competition between explicit health-conscious rules "
            "and implicit hedonic preferences."
        ),
        defaults={
            "achievementDeficit": 0.7,
            "achievementStimulus": 0.7,
            "deficitReductionRate": 0.5,
            "benefitCoefficient": 1.0,
            "costCoefficient": 0.16,
        },
        parameters=(
            ParameterSpec("achievementDeficit", "Achievement Deficit", "Drive Parameters", 0.4, 1.0, 0.1),
            ParameterSpec("achievementStimulus", "Achievement Stimulus Level", "Drive Parameters", 0.4, 1.0, 0.1),
            ParameterSpec("deficitReductionRate", "Deficit Reduction Rate", "Self-Control Depletion", 0.2, 0.8, 0.1),
            ParameterSpec("benefitCoefficient", "Benefit Coefficient", "Utility Parameters", 0.5, 1.5, 0.1),
            ParameterSpec("costCoefficient", "Cost Coefficient", "Utility Parameters", 0.1, 0.3, 0.02),
        ),
        run_explanation=(
            "The explicit-implicit interpretation shows how self-control operates through competition "
            "between deliberate health-conscious rules and automatic hedonic preferences."
        ),
        mechanism=(
            "The explicit-implicit competition determines whether health-conscious rules or hedonic "
            "preferences dominate food evaluations."
        ),
        flagship_parameter="achievementDeficit",
        flagship_note="Changes in achievement deficit affect the motivation for explicit rule engagement.",
        parameter_effects={
            "achievementDeficit": (
                "Higher achievement deficit increases motivation for goal-directed behavior, "
                "strengthening explicit rule dominance."
            ),
            "deficitReductionRate": (
                "Higher deficit reduction rates represent faster depletion of self-control resources after exertion."
            ),
            "costCoefficient": "Higher cost coefficients represent greater cognitive effort required for explicit control.",
        },
    ),
    "desire-goal": Interpretation(
        id="desire-goal",
        title="Desire-Goal Interpretation",
        description=(
            "Views self-control as managing competition between immediate food desires "
            "and longer-term health goals."
        ),
        defaults={
            "achievementStimulusBefore": 0.8,
            "achievementStimulusAfter": 0.5,
            "achievementDeficit": 0.7,
            "healthyGoalSatisfaction": 0.5,
            "costCoefficient": 0.185,
        },
        parameters=(
            ParameterSpec("achievementStimulusBefore", "Achievement Stimulus (Before)", "Drive Parameters", 0.5, 1.0, 0.1),
            ParameterSpec("achievementStimulusAfter", "Achievement Stimulus (After)", "Drive Parameters", 0.3, 0.7, 0.1),
            ParameterSpec("achievementDeficit", "Achievement Deficit", "Drive Parameters", 0.4, 1.0, 0.1),
            ParameterSpec("healthyGoalSatisfaction", "Healthy Goal Satisfaction", "Goal Competition", 0.2, 0.8, 0.1),
            ParameterSpec("costCoefficient", "Cost Coefficient", "Utility Parameters", 0.1, 0.3, 0.02),
        ),
        run_explanation=(
            "The desire-goal interpretation demonstrates how immediate food desires compete with "
            "longer-term health goals through temporal modulation of achievement drives."
        ),
        mechanism="The temporal modulation of achievement drives creates differential explicitness levels.",
        flagship_parameter="achievementStimulusBefore",
        flagship_note="Achievement stimulus changes alter goal activation strength during decision-making contexts.",
        parameter_effects={
            "achievementStimulusBefore": (
                "Higher before-choice achievement stimulus creates stronger goal activation during decision-making."
            ),
            "healthyGoalSatisfaction": (
                "Higher healthy goal satisfaction increases the utility gained from achieving health objectives."
            ),
            "costCoefficient": "Higher cost coefficients represent greater effort required for goal pursuit.",
        },
    ),
    "goal-goal": Interpretation(
        id="goal-goal",
        title="Goal-Goal Interpretation",
        description=(
            "Models self-control as explicit conflict resolution between competing subgoals "
            "through utility calculations."
        ),
        defaults={
            "achievementStimulusBefore": 0.8,
            "achievementStimulusAfter": 0.5,
            "granolaAchievementSat": 0.9,
            "chocolateFoodSat": 0.9,
            "granolaActionCost": 0.2,
            "chocolateActionCost": 0.1,
        },
        parameters=(
            ParameterSpec("achievementStimulusBefore", "Achievement Stimulus (Before)", "Drive Parameters", 0.5, 1.0, 0.1),
            ParameterSpec("achievementStimulusAfter", "Achievement Stimulus (After)", "Drive Parameters", 0.3, 0.7, 0.1),
            ParameterSpec("granolaAchievementSat", "Granola Achievement Satisfaction", "Action-Drive Satisfaction", 0.5, 1.0, 0.1),
            ParameterSpec("chocolateFoodSat", "Chocolate Food Satisfaction", "Action-Drive Satisfaction", 0.6, 1.0, 0.1),
            ParameterSpec("granolaActionCost", "Granola Action Cost", "Action Costs", 0.1, 0.4, 0.1),
            ParameterSpec("chocolateActionCost", "Chocolate Action Cost", "Action Costs", 0.05, 0.2, 0.05),
        ),
        run_explanation=(
            "The goal-goal interpretation models explicit competition between health-oriented and "
            "taste-oriented subgoals through utility calculations."
        ),
        mechanism=(
            "Utility-based subgoal competition determines food preferences through action-specific "
            "satisfaction calculations."
        ),
        flagship_parameter="granolaAchievementSat",
        flagship_note="Changes in granola achievement satisfaction alter the utility advantage of healthy choices.",
        parameter_effects={
            "granolaAchievementSat": "Higher granola achievement satisfaction increases utility gained from healthy choices.",
            "chocolateFoodSat": "Higher chocolate food satisfaction increases the hedonic advantage of indulgent options.",
            "granolaActionCost": "Higher granola action costs represent greater effort required for healthy choices.",
        },
    ),
}


def get_interpretation(interpretation_id: str) -> Interpretation:
    try:
        return INTERPRETATIONS[interpretation_id]
    except KeyError:
        raise UnknownInterpretationError(interpretation_id) from None


def default_parameters(interpretation_id: str) -> Dict[str, float]:
    return dict(get_interpretation(interpretation_id).defaults)


def parameter_groups(interpretation_id: str) -> Dict[str, List[ParameterSpec]]:
    """Slider metadata grouped by label, in declaration order."""
    groups: Dict[str, List[ParameterSpec]] = {}
    for p in get_interpretation(interpretation_id).parameters:
        groups.setdefault(p.group, []).append(p)
    return groups


# -----------------------------
# Simulators
# -----------------------------
def round_half_up(x: float) -> int:
    # halves go up (91.5 -> 92), unlike Python's round()
    return int(math.floor(x + 0.5))


def clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


def _records(before: Tuple[float, float], after: Tuple[float, float]) -> List[OutcomeRecord]:
    return [
        OutcomeRecord(BEFORE, granola=round_half_up(before[0]), chocolate=round_half_up(before[1])),
        OutcomeRecord(AFTER, granola=round_half_up(after[0]), chocolate=round_half_up(after[1])),
    ]


def simulate_explicit_implicit(params: Mapping[str, float]) -> List[OutcomeRecord]:
    achievement_drive = params["achievementStimulus"] * params["achievementDeficit"]
    before_x = min(1.0, 0.75 + (achievement_drive * params["benefitCoefficient"] - params["costCoefficient"]) * 0.3)
    after_x = max(0.3, 0.75 - params["deficitReductionRate"] * 0.4)

    return _records(
        (70 + before_x * 35, 105 - before_x * 35),
        (70 + after_x * 35, 105 - after_x * 35),
    )


def simulate_desire_goal(params: Mapping[str, float]) -> List[OutcomeRecord]:
    before_drive = params["achievementStimulusBefore"] * params["achievementDeficit"]
    after_drive = params["achievementStimulusAfter"] * params["achievementDeficit"]
    food_drive = 0.8 * 0.7

    satisfaction = params["healthyGoalSatisfaction"]
    cost = params["costCoefficient"]
    before_goal = before_drive * satisfaction + food_drive * 0.7
    after_goal = after_drive * satisfaction + food_drive * 0.7

    before_x = min(1.0, max(0.3, (before_goal * 1.0 - cost) * 1.5))
    after_x = min(1.0, max(0.3, (after_goal * 1.0 - cost) * 1.5))

    before_granola = 60 + before_x * 52 + 2
    before_chocolate = 100 - before_x * 40 + 6
    after_granola = 93.5 + (after_x - 0.5) * 2
    after_chocolate = 93.5 - (after_x - 0.5) * 1

    # scores floored at 50, no upper bound
    return _records(
        (max(50, before_granola), max(50, before_chocolate)),
        (max(50, after_granola), max(50, after_chocolate)),
    )


def simulate_goal_goal(params: Mapping[str, float]) -> List[OutcomeRecord]:
    before_drive = params["achievementStimulusBefore"] * 0.7
    after_drive = params["achievementStimulusAfter"] * 0.7
    food_drive = 0.8 * 0.7

    g_sat = params["granolaAchievementSat"]
    c_sat = params["chocolateFoodSat"]
    g_cost = params["granolaActionCost"]
    c_cost = params["chocolateActionCost"]

    before_granola_u = (before_drive * g_sat + food_drive * 0.6) - g_cost
    before_chocolate_u = (before_drive * 0.1 + food_drive * c_sat) - c_cost
    after_granola_u = (after_drive * g_sat + food_drive * 0.6) - g_cost
    after_chocolate_u = (after_drive * 0.1 + food_drive * c_sat) - c_cost

    diff_before = before_granola_u - before_chocolate_u
    diff_after = after_granola_u - after_chocolate_u

    before_granola = 88.1 + diff_before * 35 + 14.1
    before_chocolate = 88.1 - diff_before * 28 - 14.0
    after_granola = 88.1 + diff_after * 35 + 6.1
    after_chocolate = 88.1 - diff_after * 28 + 5.0

    return _records(
        (clamp(before_granola, 50, 150), clamp(before_chocolate, 50, 150)),
        (clamp(after_granola, 50, 150), clamp(after_chocolate, 50, 150)),
    )


SIMULATORS: Dict[str, Callable[[Mapping[str, float]], List[OutcomeRecord]]] = {
    "explicit-implicit": simulate_explicit_implicit,
    "desire-goal": simulate_desire_goal,
    "goal-goal": simulate_goal_goal,
}


def simulate(interpretation_id: str, params: Mapping[str, float]) -> List[OutcomeRecord]:
    if interpretation_id not in SIMULATORS:
        raise UnknownInterpretationError(interpretation_id)
    return SIMULATORS[interpretation_id](params)


# -----------------------------
# Comparator
# -----------------------------
@dataclass(frozen=True)
class ParameterChange:
    key: str
    label: str
    group: str
    percent_change: float

    @property
    def direction(self) -> str:
        return "increased" if self.percent_change > 0 else "decreased"


@dataclass(frozen=True)
class ConditionDifference:
    condition: str
    granola: float
    chocolate: float


@dataclass(frozen=True)
class PreferenceGaps:
    human_before: float
    simulation_before: float
    human_after: float
    simulation_after: float


@dataclass(frozen=True)
class AnalysisReport:
    interpretation_id: str
    significant_changes: Tuple[ParameterChange, ...]
    differences: Tuple[ConditionDifference, ...]
    gaps: PreferenceGaps
    mechanism: str
    verdict: Optional[str]

    def to_markdown(self) -> str:
        title = get_interpretation(self.interpretation_id).title.replace(" Interpretation", "")
        lines = ["## Parameter Configuration Analysis", ""]

        if self.significant_changes:
            lines.append("### Significant Parameter Changes:")
            for c in self.significant_changes:
                lines.append(f"• **{c.label}** ({c.group}): {c.direction} by {abs(c.percent_change):.1f}%")
            lines.append("")

        lines.append("### Simulation vs Human Results:")
        for d in self.differences:
            lines.append(f"**{d.condition} Condition:**")
            lines.append(f"• Granola bars: {_signed(d.granola)} points difference")
            lines.append(f"• Chocolate bars: {_signed(d.chocolate)} points difference")
        lines.append("")

        g = self.gaps
        lines.append("### Effect Size Comparison:")
        lines.append(f"• Human preference difference (Before): {g.human_before:.1f} points")
        lines.append(f"• Simulation preference difference (Before): {g.simulation_before:.1f} points")
        lines.append(f"• Human preference difference (After): {g.human_after:.1f} points")
        lines.append(f"• Simulation preference difference (After): {g.simulation_after:.1f} points")
        lines.append("")

        lines.append(f"### Mechanistic Explanation ({title}):")
        lines.append(self.mechanism)
        lines.append("")

        lines.append("### Convergence Analysis:")
        if self.verdict:
            lines.append(self.verdict)
        return "\n".join(lines) + "\n"


def _signed(x: float) -> str:
    return f"{'+' if x > 0 else ''}{x:.1f}"


def percent_change(value: float, default: float) -> float:
    # rounded so an exact slider step of 10% stays at 10.0
    return round((value - default) / default * 100, 6)


def significant_changes(
    interpretation_id: str, params: Mapping[str, float], defaults: Mapping[str, float]
) -> List[ParameterChange]:
    interp = get_interpretation(interpretation_id)
    changes: List[ParameterChange] = []
    for key, value in params.items():
        pct = percent_change(value, defaults[key])
        if abs(pct) > SIGNIFICANT_CHANGE_PERCENT:
            spec = interp.spec(key)
            changes.append(ParameterChange(
                key=key,
                label=spec.label if spec else key,
                group=spec.group if spec else "Unknown",
                percent_change=pct,
            ))
    return changes


def convergence_verdict(simulation_after_gap: float, human_after_gap: float) -> Optional[str]:
    sim = abs(simulation_after_gap)
    human = abs(human_after_gap)
    if sim < CONVERGENCE_MARGIN and human < CONVERGENCE_MARGIN:
        return GOOD_CONVERGENCE
    if sim > human + CONVERGENCE_MARGIN:
        return SIMULATION_STRONGER
    return None


def mechanistic_explanation(
    interpretation_id: str, params: Mapping[str, float], defaults: Mapping[str, float]
) -> str:
    interp = get_interpretation(interpretation_id)
    text = interp.mechanism
    key = interp.flagship_parameter
    if params.get(key) != defaults.get(key):
        text += " " + interp.flagship_note
    return text


def compare(
    interpretation_id: str,
    params: Mapping[str, float],
    defaults: Mapping[str, float],
    outcomes: List[OutcomeRecord],
    reference: Tuple[OutcomeRecord, OutcomeRecord] = REFERENCE_DATA,
) -> AnalysisReport:
    sim_before, sim_after = outcomes[0], outcomes[1]
    human_before, human_after = reference[0], reference[1]

    differences = tuple(
        ConditionDifference(sim.condition, sim.granola - human.granola, sim.chocolate - human.chocolate)
        for sim, human in ((sim_before, human_before), (sim_after, human_after))
    )
    gaps = PreferenceGaps(
        human_before=human_before.gap,
        simulation_before=sim_before.gap,
        human_after=human_after.gap,
        simulation_after=sim_after.gap,
    )

    report = AnalysisReport(
        interpretation_id=interpretation_id,
        significant_changes=tuple(significant_changes(interpretation_id, params, defaults)),
        differences=differences,
        gaps=gaps,
        mechanism=mechanistic_explanation(interpretation_id, params, defaults),
        verdict=convergence_verdict(gaps.simulation_after, gaps.human_after),
    )
    logger.info(
        "Analyzed %s: %d significant change(s), verdict=%s",
        interpretation_id, len(report.significant_changes), report.verdict,
    )
    return report


# -----------------------------
# Session snapshots
# -----------------------------
@dataclass(frozen=True)
class Session:
    interpretation_id: Optional[str] = None
    parameters: Dict[str, float] = field(default_factory=dict)
    outcomes: Optional[Tuple[OutcomeRecord, ...]] = None
    report: Optional[AnalysisReport] = None
    explanation: str = ""


def select_interpretation(session: Session, interpretation_id: str) -> Session:
    params = default_parameters(interpretation_id)
    logger.info("Selected interpretation %s", interpretation_id)
    return Session(interpretation_id=interpretation_id, parameters=params)


def reset_parameters(session: Session) -> Session:
    if not session.interpretation_id:
        logger.debug("Reset ignored: no interpretation selected")
        return session
    return select_interpretation(session, session.interpretation_id)


def set_parameter(session: Session, key: str, value: float) -> Session:
    if not session.interpretation_id:
        logger.debug("Parameter change ignored: no interpretation selected")
        return session
    interp = get_interpretation(session.interpretation_id)
    if interp.spec(key) is None:
        raise ValueError(f"Unknown parameter '{key}' for interpretation '{interp.id}'.")

    params = dict(session.parameters)
    params[key] = float(value)
    explanation = interp.parameter_effects.get(key, session.explanation)
    return replace(session, parameters=params, explanation=explanation)


def apply_parameters(session: Session, params: Mapping[str, float]) -> Session:
    # whole parameter set replaced: previous results no longer describe it
    if not session.interpretation_id:
        logger.debug("Preset ignored: no interpretation selected")
        return session
    return Session(interpretation_id=session.interpretation_id, parameters=dict(params))


def run_simulation(session: Session) -> Session:
    if not session.interpretation_id or not session.parameters:
        logger.debug("Simulation skipped: no interpretation selected")
        return session
    interp = get_interpretation(session.interpretation_id)
    outcomes = tuple(simulate(interp.id, session.parameters))
    logger.info(
        "Simulated %s: %s",
        interp.id, ", ".join(f"{o.condition}={o.granola}/{o.chocolate}" for o in outcomes),
    )
    return replace(
        session,
        parameters=dict(session.parameters),
        outcomes=outcomes,
        report=None,
        explanation=interp.run_explanation,
    )


def analyze(session: Session) -> Session:
    if not session.interpretation_id or not session.outcomes:
        logger.debug("Analysis skipped: no simulation results")
        return session
    report = compare(
        session.interpretation_id,
        session.parameters,
        default_parameters(session.interpretation_id),
        list(session.outcomes),
    )
    return replace(session, parameters=dict(session.parameters), report=report)


# -----------------------------
# Presets (JSON)
# -----------------------------
def parameters_to_json(params: Mapping[str, float]) -> str:
    return json.dumps(dict(params), indent=2)


def parameters_from_json(raw: str, interpretation_id: str) -> Dict[str, float]:
    interp = get_interpretation(interpretation_id)
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("Parameters JSON must be an object like {\"achievementDeficit\": 0.8}.")

    params = dict(interp.defaults)
    for key, value in data.items():
        spec = interp.spec(key)
        if spec is None:
            raise ValueError(f"Unknown parameter '{key}' for interpretation '{interp.id}'.")
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"Parameter '{key}' must be a number, got {value!r}.")
        params[key] = spec.clamp(float(value))
    return params


# -----------------------------
# Cross-interpretation comparison
# -----------------------------
def outcomes_frame(outcomes: List[OutcomeRecord]) -> pd.DataFrame:
    return pd.DataFrame([o.as_dict() for o in outcomes]).set_index("condition")


def compare_interpretations(parameter_sets: Optional[Mapping[str, Mapping[str, float]]] = None) -> pd.DataFrame:
    parameter_sets = parameter_sets or {}
    rows = []
    for interp_id, interp in INTERPRETATIONS.items():
        params = dict(parameter_sets.get(interp_id, interp.defaults))
        for sim, human in zip(simulate(interp_id, params), REFERENCE_DATA):
            rows.append({
                "interpretation": interp.title,
                "condition": sim.condition,
                "granola": sim.granola,
                "chocolate": sim.chocolate,
                "gap": sim.gap,
                "human_gap": round(human.gap, 2),
                "granola_vs_human": round(sim.granola - human.granola, 2),
                "chocolate_vs_human": round(sim.chocolate - human.chocolate, 2),
            })
    return pd.DataFrame(rows)
