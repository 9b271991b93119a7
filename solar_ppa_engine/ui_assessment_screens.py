import dataclasses

import plotly.graph_objects as go
import streamlit as st

from solar_ppa_engine.assessment_models import Compliance, Savings, SiteInfo, SolarData
from solar_ppa_engine.solar_calculator_logic import (
    get_irradiance_message,
    get_performance_rating,
    resolve_irradiance,
)
from solar_ppa_engine.utils import (
    DEFAULT_PANEL_EFFICIENCY_PCT,
    MAX_PANEL_EFFICIENCY_PCT,
    MAX_ROOF_AREA_M2,
    MIN_PANEL_EFFICIENCY_PCT,
    SITE_PRESETS,
    TOOLTIPS,
    USAGE_PRESETS,
    format_naira,
)

RATING_ICONS = {"Excellent": "🌞", "Good": "☀️", "Fair": "🌤️", "Poor": "☁️"}


def _init_widget_state(key, value):
    # Widget state is dropped when a screen is left, so re-seed it from the record
    if key not in st.session_state:
        st.session_state[key] = value


# =============== Step 2: Site Info ===============
def display_site_info_screen(wizard):
    step = wizard.current_step()
    site = wizard.record.site_info

    st.markdown("**⚡ Quick Setup - Common Configurations**")
    preset_cols = st.columns(len(SITE_PRESETS))
    for col, (preset_key, preset) in zip(preset_cols, SITE_PRESETS.items()):
        with col:
            if st.button(f"{preset['label']}\n\n{preset['panel_efficiency_pct']}% efficiency",
                         key=f"s2_preset_{preset_key}", width="stretch"):
                st.session_state.s2_roof_area = float(preset["roof_area_m2"])
                st.session_state.s2_panel_efficiency = preset["panel_efficiency_pct"]

    _init_widget_state("s2_roof_area", float(site.roof_area_m2 or 100))
    _init_widget_state("s2_panel_efficiency", int(site.panel_efficiency_pct or DEFAULT_PANEL_EFFICIENCY_PCT))

    with st.container(border=True):
        roof_area = st.number_input(
            "Available Roof Area (square meters)", min_value=0.0, max_value=float(MAX_ROOF_AREA_M2),
            step=10.0, key="s2_roof_area", help=TOOLTIPS.get("roof_area_m2"),
        )
        efficiency = st.slider(
            "Solar Panel Efficiency (%)", MIN_PANEL_EFFICIENCY_PCT, MAX_PANEL_EFFICIENCY_PCT, step=1,
            key="s2_panel_efficiency", help=TOOLTIPS.get("panel_efficiency_pct"),
        )

    system_size = step.calculator(roof_area, efficiency)
    wizard.update({step.owned_slice: SiteInfo(roof_area_m2=roof_area, panel_efficiency_pct=efficiency,
                                              system_size_kw=system_size)})

    st.metric("⚡ Calculated System Size", f"{system_size:.1f} kW")
    st.info("A typical 1 kW solar system in Nigeria can generate 4-5 kWh per day, "
            "depending on location and weather conditions.", icon="💡")


# =============== Step 3: Solar Potential ===============
def display_solar_potential_screen(wizard):
    step = wizard.current_step()
    record = wizard.record
    location = record.location
    system_size = record.site_info.system_size_kw

    col_loc, col_state, col_size = st.columns(3)
    col_loc.write(f"**📍 Location:** {location.address or 'Not set'}")
    col_state.write(f"**🗺️ State:** {location.state or 'Not set'}")
    col_size.write(f"**⚡ System Size:** {system_size:.1f} kW")

    irradiance, source = resolve_irradiance(record)
    output = step.calculator(system_size, irradiance)
    wizard.update({step.owned_slice: SolarData(
        daily_output_kwh=output["daily"],
        annual_output_kwh=output["annual"],
        irradiance_kwh_m2_day=irradiance,
        temperature_c=record.solar_data.temperature_c,
        irradiance_source=source,
    )})

    with st.container(border=True):
        c1, c2, c3 = st.columns(3)
        c1.metric("☀️ Solar Irradiance", f"{irradiance} kWh/m²/day", help=TOOLTIPS.get("irradiance"))
        c2.metric("🔋 Daily Output", f"{output['daily']:,.2f} kWh")
        c3.metric("📅 Annual Output", f"{output['annual']:,.0f} kWh")
        if source == "nasa_power":
            st.caption("Irradiance source: NASA POWER satellite average for this exact location.")
        else:
            st.caption(f"Irradiance source: long-run average for {location.state or 'Nigeria'}.")

    rating = get_performance_rating(irradiance)
    st.subheader(f"{RATING_ICONS[rating]} Performance Rating: {rating}")
    st.progress(min(irradiance / 6.5, 1.0))
    st.info(get_irradiance_message(irradiance), icon="📈")


# =============== Step 4: Savings ===============
def display_savings_screen(wizard):
    step = wizard.current_step()
    record = wizard.record
    savings = record.savings

    st.markdown("**⚡ Quick Setup - Typical Usage Profiles**")
    preset_cols = st.columns(len(USAGE_PRESETS))
    for col, (preset_key, preset) in zip(preset_cols, USAGE_PRESETS.items()):
        with col:
            if st.button(f"{preset['label']}\n\n{preset['current_usage_kwh']:,} kWh/month",
                         key=f"s4_preset_{preset_key}", width="stretch"):
                st.session_state.s4_usage = float(preset["current_usage_kwh"])
                st.session_state.s4_bill = float(preset["current_bill_ngn"])

    _init_widget_state("s4_usage", float(savings.current_usage_kwh))
    _init_widget_state("s4_bill", float(savings.current_bill_ngn))

    with st.container(border=True):
        in1, in2 = st.columns(2)
        with in1:
            usage = st.number_input("Monthly Electricity Usage (kWh)", min_value=0.0, step=50.0,
                                    key="s4_usage", help=TOOLTIPS.get("current_usage_kwh"))
        with in2:
            bill = st.number_input("Current Monthly Bill (₦)", min_value=0.0, step=5000.0,
                                   key="s4_bill", help=TOOLTIPS.get("current_bill_ngn"))
        st.caption(f"PPA rate {format_naira(savings.ppa_rate_ngn)}/kWh vs Band A grid tariff "
                   f"{format_naira(savings.grid_tariff_ngn)}/kWh", help=TOOLTIPS.get("ppa_rate_ngn"))

    if usage <= 0 or bill <= 0:
        wizard.update({step.owned_slice: dataclasses.replace(
            savings, current_usage_kwh=usage, current_bill_ngn=bill,
            solar_coverage_pct=0.0, monthly_savings_ngn=None, annual_savings_ngn=None,
        )})
        st.info("Enter your monthly usage and bill to estimate PPA savings.", icon="💡")
        return

    result = step.calculator(record.solar_data.daily_output_kwh, usage,
                             grid_tariff=savings.grid_tariff_ngn, ppa_rate=savings.ppa_rate_ngn)
    wizard.update({step.owned_slice: Savings(
        current_usage_kwh=usage,
        current_bill_ngn=bill,
        ppa_rate_ngn=savings.ppa_rate_ngn,
        grid_tariff_ngn=savings.grid_tariff_ngn,
        solar_coverage_pct=result["coverage_pct"],
        monthly_savings_ngn=result["monthly"],
        annual_savings_ngn=result["annual"],
    )})

    m1, m2, m3 = st.columns(3)
    m1.metric("💰 Monthly Savings", format_naira(result["monthly"]))
    m2.metric("📅 Annual Savings", format_naira(result["annual"]))
    m3.metric("☀️ Solar Coverage", f"{result['coverage_pct']:g}%")
    st.progress(result["coverage_pct"] / 100, text="Share of your usage covered by solar")
    if result["monthly"] == 0:
        st.warning("No solar output was calculated for this site, so there are no savings yet. "
                   "Check the Site Info and Solar Potential steps.", icon="⚠️")


# =============== Step 5: Compliance ===============
def _score_gauge(title, value, threshold=None):
    fig = go.Figure(go.Indicator(
        mode="gauge+number",
        value=value,
        number={"suffix": "%"},
        title={"text": title},
        gauge={
            "axis": {"range": [0, 100]},
            "bar": {"color": "#16A34A" if threshold is None or value >= threshold else "#EAB308"},
            "threshold": {"line": {"color": "red", "width": 3}, "value": threshold} if threshold else None,
        },
    ))
    fig.update_layout(height=220, margin=dict(l=20, r=20, t=50, b=10))
    return fig


def display_compliance_screen(wizard):
    step = wizard.current_step()
    compliance = wizard.record.compliance

    checklist = []
    with st.container(border=True):
        for item in compliance.checklist:
            key = f"s5_requirement_{item.id}"
            _init_widget_state(key, item.satisfied)
            label = f"**{item.requirement}**" + (" :red[*(mandatory)*]" if item.mandatory else "")
            satisfied = st.checkbox(label, key=key, help=item.description)
            caption = f"{item.category} · {item.description}"
            if item.link:
                caption += f" · [Learn more]({item.link})"
            st.caption(caption)
            checklist.append(dataclasses.replace(item, satisfied=satisfied))

    scores = step.calculator(checklist)
    wizard.update({step.owned_slice: Compliance(
        checklist=checklist,
        score=scores["score"],
        mandatory_score=scores["mandatory_score"],
        completed_items=scores["completed_items"],
        total_items=scores["total_items"],
    )})

    g1, g2 = st.columns(2)
    g1.plotly_chart(_score_gauge("Overall Compliance", scores["score"]), width="stretch")
    g2.plotly_chart(
        _score_gauge("Mandatory Requirements", scores["mandatory_score"], wizard.compliance_threshold_pct),
        width="stretch",
    )
    st.caption(f"{scores['completed_items']} of {scores['total_items']} requirements completed · "
               f"{scores['mandatory_completed']} of {scores['mandatory_total']} mandatory",
               help=TOOLTIPS.get("mandatory_score"))
