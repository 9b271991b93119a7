import json
from datetime import datetime

import plotly.graph_objects as go
import streamlit as st

from solar_ppa_engine.pdf_generator import generate_pdf_report
from solar_ppa_engine.report_assembler import assemble_report, build_report_payload
from solar_ppa_engine.report_delivery import send_report_email
from solar_ppa_engine.utils import NEXT_STEPS, TOOLTIPS, format_naira

CATEGORY_STYLES = {
    "Highly Viable": ("success", "🌟"),
    "Viable": ("info", "👍"),
    "Needs Attention": ("warning", "⚠️"),
}


def _viability_breakdown_chart(viability):
    components = ["Irradiance", "Savings", "Compliance"]
    earned = [viability["irradiance_points"], viability["savings_points"], viability["compliance_points"]]
    maximum = [25, 25, 50]
    fig = go.Figure()
    fig.add_trace(go.Bar(y=components, x=earned, orientation="h", name="Points earned",
                         marker_color=["#EAB308", "#16A34A", "#2563EB"]))
    fig.add_trace(go.Bar(y=components, x=[m - e for m, e in zip(maximum, earned)], orientation="h",
                         name="Points available", marker_color="#E5E7EB"))
    fig.update_layout(barmode="stack", height=260, margin=dict(l=10, r=10, t=30, b=10),
                      title_text=f"Viability Score: {viability['total']:g}/100", showlegend=False)
    return fig


def _display_report_exports(wizard):
    record = wizard.record
    generated_at = datetime.now()
    report_text = assemble_report(record, generated_at)
    file_stamp = generated_at.strftime("%Y%m%d")

    st.subheader("📥 Export Your Report")
    dl1, dl2, dl3 = st.columns(3)
    with dl1:
        st.download_button(
            "📄 Download Text Report",
            data=report_text,
            file_name=f"solar_ppa_assessment_{file_stamp}.txt",
            mime="text/plain",
            width="stretch",
        )
    with dl2:
        st.download_button(
            "🧾 Download Data (JSON)",
            data=json.dumps(build_report_payload(record, generated_at), ensure_ascii=False, indent=2),
            file_name=f"solar_ppa_assessment_{file_stamp}.json",
            mime="application/json",
            width="stretch",
            key="s6_download_json",
        )
    with dl3:
        if st.button("🖨️ Prepare PDF Report", key="s6_prepare_pdf", width="stretch"):
            with st.spinner("Building PDF report..."):
                st.session_state.pdf_report_bytes = generate_pdf_report(record, generated_at)
        if st.session_state.get("pdf_report_bytes"):
            st.download_button(
                "⬇️ Download PDF Report",
                data=st.session_state.pdf_report_bytes,
                file_name=f"solar_ppa_assessment_{file_stamp}.pdf",
                mime="application/pdf",
                width="stretch",
                key="s6_download_pdf",
            )

    with st.expander("✉️ E-mail this report"):
        recipient = st.text_input("Your e-mail address", key="s6_report_email",
                                  help=TOOLTIPS.get("report_email"))
        if st.button("Send Report", key="s6_send_email"):
            result = send_report_email(st.session_state.get("ses_client"), recipient, report_text)
            if "error" in result:
                st.error(result["error"], icon="🚨")
            else:
                st.success(f"Report sent to {recipient.strip()}.", icon="✅")


def display_results_screen(wizard):
    record = wizard.record
    viability = wizard.current_step().calculator(record)
    category = viability["category"]

    style, icon = CATEGORY_STYLES[category]
    getattr(st, style)(f"### {category}\nOverall viability score: **{viability['total']:g}/100**", icon=icon)

    m1, m2, m3, m4 = st.columns(4)
    m1.metric("⚡ System Size", f"{record.site_info.system_size_kw:.1f} kW")
    m2.metric("🔋 Daily Output", f"{record.solar_data.daily_output_kwh:,.2f} kWh")
    m3.metric("💰 Monthly Savings", format_naira(record.savings.monthly_savings_ngn))
    m4.metric("📋 Compliance", f"{record.compliance.score}%")

    st.plotly_chart(_viability_breakdown_chart(viability), width="stretch")
    st.caption(TOOLTIPS.get("viability"))

    st.subheader("🧭 Recommended Next Steps")
    for step in NEXT_STEPS[category]:
        st.markdown(f"- {step}")

    st.markdown("---")
    _display_report_exports(wizard)
