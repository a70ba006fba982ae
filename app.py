# app.py
# Dark, compact, interactive self-control simulator with:
# - three interpretations (explicit-implicit, desire-goal, goal-goal)
# - grouped parameter sliders + JSON presets editor
# - human vs simulation charts (2 per row)
# - parameter configuration analysis against the human data
# - Compare page (all interpretations side by side)
# - Documentation page with the model equations (st.latex everywhere)

import logging
import os

import matplotlib.pyplot as plt
import streamlit as st

from charts import gap_comparison_chart, outcome_chart
from self_control import (
    HUMAN_DATA_SOURCE,
    INTERPRETATIONS,
    REFERENCE_DATA,
    Session,
    analyze,
    apply_parameters,
    compare_interpretations,
    default_parameters,
    outcomes_frame,
    parameter_groups,
    parameters_from_json,
    parameters_to_json,
    reset_parameters,
    run_simulation,
    select_interpretation,
    set_parameter,
    simulate,
)

logging.basicConfig(
    level=os.environ.get("SELFCONTROL_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

HUMAN_CAPTION = (
    "Human participants showed significantly higher granola bar ratings compared to chocolate bars "
    "in the before-choice condition (M = 102.19 vs M = 74.06), with this preference disparity "
    "disappearing in the after-choice condition (M = 94.22 vs M = 93.11)."
)


# -----------------------------
# Session state helpers
# -----------------------------
def init_state():
    if "session" not in st.session_state:
        st.session_state.session = Session()
    if "slider_nonce" not in st.session_state:
        # bumped whenever the parameter set is replaced so sliders re-read their values
        st.session_state.slider_nonce = 0
    if "preset_json" not in st.session_state:
        st.session_state.preset_json = None
    if "slider_base" not in st.session_state:
        st.session_state.slider_base = {}


def commit(session: Session, refresh_sliders: bool = False):
    st.session_state.session = session
    if refresh_sliders:
        st.session_state.slider_nonce += 1
        st.session_state.slider_base = dict(session.parameters)
        st.session_state.preset_json = None


def show_figure(fig):
    st.pyplot(fig)
    plt.close(fig)


# -----------------------------
# Documentation page
# -----------------------------
def render_docs():
    st.title("Documentation: Interpretations & Equations")

    st.header("What does this simulator show?")
    st.markdown(
        "Participants in the original study rated granola bars (healthy) and chocolate bars (indulgent) "
        "either **before** or **after** choosing between them. Before the choice, granola was rated much "
        "higher; after the choice the gap disappeared.\n\n"
        "The simulator asks how three competing theories of self-control could reproduce this pattern. "
        "Each interpretation maps a small set of parameters to two data points (before / after) that can "
        "be compared against the human means."
    )

    st.divider()
    st.header("1) Explicit-Implicit")
    st.markdown(INTERPRETATIONS["explicit-implicit"].description)
    st.latex(r"D_{ach}=s_{ach}\,d_{ach}")
    st.latex(r"x_{before}=\min\big(1,\;0.75+(D_{ach}\,b-c)\cdot 0.3\big)")
    st.latex(r"x_{after}=\max\big(0.3,\;0.75-0.4\,r\big)")
    st.latex(r"G=70+35\,x,\qquad C=105-35\,x")
    st.markdown(
        "- $s_{ach}$ achievement stimulus, $d_{ach}$ achievement deficit.\n"
        "- $b$ benefit coefficient, $c$ cost coefficient, $r$ deficit reduction rate.\n"
        "- $x$ is the **explicitness** of the health rule; after the choice it is depleted."
    )

    st.divider()
    st.header("2) Desire-Goal")
    st.markdown(INTERPRETATIONS["desire-goal"].description)
    st.latex(r"D^{t}_{ach}=s^{t}_{ach}\,d_{ach},\qquad D_{food}=0.8\cdot 0.7")
    st.latex(r"V^{t}=D^{t}_{ach}\,h+0.7\,D_{food}")
    st.latex(r"x^{t}=\min\big(1,\max(0.3,\;1.5\,(V^{t}-c))\big)")
    st.latex(r"G_{before}=62+52\,x^{b},\qquad C_{before}=106-40\,x^{b}")
    st.latex(r"G_{after}=93.5+2\,(x^{a}-0.5),\qquad C_{after}=93.5-(x^{a}-0.5)")
    st.markdown("- $h$ healthy goal satisfaction; every score is floored at 50.")

    st.divider()
    st.header("3) Goal-Goal")
    st.markdown(INTERPRETATIONS["goal-goal"].description)
    st.latex(r"D^{t}_{ach}=0.7\,s^{t}_{ach},\qquad D_{food}=0.8\cdot 0.7")
    st.latex(r"U^{t}_{G}=D^{t}_{ach}\,\sigma_G+0.6\,D_{food}-k_G")
    st.latex(r"U^{t}_{C}=0.1\,D^{t}_{ach}+D_{food}\,\sigma_C-k_C")
    st.latex(r"\Delta^{t}=U^{t}_{G}-U^{t}_{C}")
    st.latex(r"G_{before}=102.2+35\,\Delta^{b},\qquad C_{before}=74.1-28\,\Delta^{b}")
    st.latex(r"G_{after}=94.2+35\,\Delta^{a},\qquad C_{after}=93.1-28\,\Delta^{a}")
    st.markdown("- $\\sigma$ action-drive satisfaction, $k$ action cost; scores clamped to $[50,150]$.")

    st.divider()
    st.header("4) Analysis against human data")
    st.latex(r"\delta_p=100\cdot\frac{p-p_0}{p_0}\quad\text{(flagged when }|\delta_p|>10\text{)}")
    st.latex(r"\mathrm{gap}=G-C")
    st.markdown(
        "- **Good convergence**: both $|\\mathrm{gap}^{sim}_{after}|<5$ and $|\\mathrm{gap}^{human}_{after}|<5$.\n"
        "- **Simulation stronger**: $|\\mathrm{gap}^{sim}_{after}|>|\\mathrm{gap}^{human}_{after}|+5$.\n"
        "- Otherwise no verdict is given.\n\n"
        "All scores are rounded to whole points; the coefficients are fitted to the human means, "
        "not derived from the theories."
    )


# -----------------------------
# Compare page
# -----------------------------
def render_compare():
    st.title("Compare interpretations")
    session: Session = st.session_state.session

    st.caption(
        "All interpretations at their default parameters. The currently selected interpretation uses "
        "the values from the Simulator page."
    )
    parameter_sets = {}
    if session.interpretation_id:
        parameter_sets[session.interpretation_id] = session.parameters

    frame = compare_interpretations(parameter_sets)
    st.dataframe(frame)

    colA, colB = st.columns(2)
    with colA:
        show_figure(gap_comparison_chart(frame))
    with colB:
        show_figure(outcome_chart(REFERENCE_DATA, f"Human ({HUMAN_DATA_SOURCE})"))

    st.subheader("Simulated outcomes (2 per row)")
    ids = list(INTERPRETATIONS.keys())
    for pair in [ids[i:i + 2] for i in range(0, len(ids), 2)]:
        c1, c2 = st.columns(2)
        for idx, interp_id in enumerate(pair):
            with (c1 if idx == 0 else c2):
                params = parameter_sets.get(interp_id, default_parameters(interp_id))
                title = INTERPRETATIONS[interp_id].title
                show_figure(outcome_chart(simulate(interp_id, params), title))


# -----------------------------
# Simulator page
# -----------------------------
def render_selection(session: Session) -> Session:
    st.header("Select interpretation")
    cols = st.columns(len(INTERPRETATIONS))
    for col, interp in zip(cols, INTERPRETATIONS.values()):
        with col:
            selected = session.interpretation_id == interp.id
            st.markdown(f"**{interp.title}**" + (" ✅" if selected else ""))
            st.caption(interp.description)
            if st.button("Select", key=f"select_{interp.id}", disabled=selected):
                session = select_interpretation(session, interp.id)
                commit(session, refresh_sliders=True)
                st.rerun()
    return session


def render_sliders(session: Session) -> Session:
    st.header("Critical parameters")
    nonce = st.session_state.slider_nonce
    # initial values stay fixed between refreshes; the widget keeps its own state
    base = st.session_state.slider_base or session.parameters
    for group, specs in parameter_groups(session.interpretation_id).items():
        st.subheader(group)
        cols = st.columns(3)
        for idx, spec in enumerate(specs):
            with cols[idx % 3]:
                value = st.slider(
                    spec.label,
                    min_value=float(spec.min),
                    max_value=float(spec.max),
                    value=float(base.get(spec.key, session.parameters[spec.key])),
                    step=float(spec.step),
                    format="%.2f",
                    key=f"{session.interpretation_id}_{spec.key}_{nonce}",
                )
                if value != session.parameters[spec.key]:
                    session = set_parameter(session, spec.key, value)
                    # keep the seed in step so a rebuilt slider starts from the edit
                    st.session_state.slider_base[spec.key] = value
    commit(session)
    return session


def render_presets(session: Session) -> Session:
    with st.expander("Parameters (JSON presets)", expanded=False):
        if st.session_state.preset_json is None:
            st.session_state.preset_json = parameters_to_json(session.parameters)
        st.caption("Paste an object of parameter values; missing keys use defaults, values are clamped to the slider range.")
        raw = st.text_area("Parameters JSON", value=st.session_state.preset_json, height=180)
        st.session_state.preset_json = raw

        if st.button("Load parameters"):
            try:
                params = parameters_from_json(raw, session.interpretation_id)
            except ValueError as e:
                # json.JSONDecodeError is a ValueError too
                logger.warning("Rejected parameters JSON: %s", e)
                st.error(f"Parameters JSON error: {e}")
            else:
                session = apply_parameters(session, params)
                commit(session, refresh_sliders=True)
                st.rerun()
    return session


def render_report(text: str):
    for line in text.splitlines():
        if not line.strip():
            continue
        if line.startswith("✓"):
            st.success(line)
        elif line.startswith("⚠"):
            st.warning(line)
        else:
            st.markdown(line)


def render_simulator():
    st.title("Self-Control Simulation: Three Interpretations")
    session: Session = st.session_state.session

    session = render_selection(session)
    if not session.interpretation_id:
        st.info("Pick an interpretation to tune its parameters.")
        st.subheader(f"Human Experiment Results ({HUMAN_DATA_SOURCE})")
        show_figure(outcome_chart(REFERENCE_DATA, "Human"))
        st.caption(HUMAN_CAPTION)
        return

    st.divider()
    session = render_sliders(session)
    session = render_presets(session)

    c1, c2 = st.columns(2)
    with c1:
        if st.button("Run simulation ✅", type="primary"):
            session = run_simulation(session)
            commit(session)
    with c2:
        if st.button("Reset values"):
            session = reset_parameters(session)
            commit(session, refresh_sliders=True)
            st.rerun()

    st.divider()
    colA, colB = st.columns(2)
    with colA:
        st.subheader(f"Human Experiment Results ({HUMAN_DATA_SOURCE})")
        show_figure(outcome_chart(REFERENCE_DATA, "Human"))
        st.caption(HUMAN_CAPTION)

    with colB:
        st.subheader("Simulation Results")
        if session.outcomes:
            show_figure(outcome_chart(session.outcomes, "Simulation"))
            st.dataframe(outcomes_frame(list(session.outcomes)))
        else:
            st.caption("Press **Run simulation ✅** to compute before / after ratings.")

    if session.explanation:
        st.info(session.explanation)

    if session.outcomes:
        if st.button("Analyze parameter configuration"):
            session = analyze(session)
            commit(session)

    if session.report:
        with st.container(border=True):
            render_report(session.report.to_markdown())


# -----------------------------
# App entry
# -----------------------------
st.set_page_config(page_title="Self-Control Simulator", layout="wide")
init_state()

with st.sidebar:
    st.markdown("## Navigation")
    page = st.radio("Go to", ["Simulator", "Compare interpretations", "Documentation"], index=0)

if page == "Documentation":
    render_docs()
elif page == "Compare interpretations":
    render_compare()
else:
    render_simulator()
