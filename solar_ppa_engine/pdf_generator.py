import io
from datetime import datetime

import matplotlib.pyplot as plt
import pandas as pd
from fpdf import FPDF
from fpdf.fonts import FontFace

from solar_ppa_engine.report_assembler import IRRADIANCE_SOURCE_LABELS
from solar_ppa_engine.solar_calculator_logic import calculate_record_viability, get_performance_rating
from solar_ppa_engine.utils import format_naira

# --- Helper functions to create consistent PDF sections ---
headings_style = FontFace(emphasis="BOLD", fill_color=(220, 240, 220))


def _latin1(text):
    # Core PDF fonts only cover latin-1; provider addresses may not.
    return str(text).encode('latin-1', 'replace').decode('latin-1')


def _naira(amount):
    return format_naira(amount, symbol="NGN ")


def add_subsection_header(pdf, title):
    pdf.set_font('Helvetica', 'B', 12)
    pdf.cell(0, 8, title, new_x="LMARGIN", new_y="NEXT", align='L')
    pdf.ln(2)


def write_table_from_df(pdf, df, col_widths=None):
    """
    Renders a pandas DataFrame as a table in the PDF.
    `col_widths` optionally fixes the width of named columns; the rest share what is left.
    """
    if df.empty:
        pdf.cell(0, 10, "No data available to display in table.", new_x="LMARGIN", new_y="NEXT")
        return

    effective_page_width = pdf.w - 2 * pdf.l_margin
    col_widths = col_widths or {}
    num_unspecified = len(df.columns) - len(col_widths)
    remaining_width = (
        (effective_page_width - sum(col_widths.values())) / num_unspecified if num_unspecified > 0 else 0
    )
    widths = [col_widths.get(col_name, remaining_width) for col_name in df.columns]

    pdf.set_font('Helvetica', '', 9)
    with pdf.table(col_widths=widths, text_align="LEFT", line_height=6) as table:
        header = table.row(style=headings_style)
        for col_name in df.columns:
            header.cell(_latin1(col_name))
        for _, row_data in df.iterrows():
            row = table.row()
            for item in row_data:
                row.cell(_latin1(item))
    pdf.set_font('Helvetica', '', 10)


# --- PDF Class with Header/Footer ---
class PDF(FPDF):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.page_title = ""

    def set_page_title(self, title):
        self.page_title = title

    def header(self):
        self.set_font('Helvetica', 'B', 10)
        self.set_text_color(22, 101, 52)  # Dark green
        self.cell(0, 6, "NigeriaSolar PPA Validator", new_x="LMARGIN", new_y="NEXT", align='L')
        if self.page_title:
            self.set_font('Helvetica', 'B', 16)
            self.cell(0, 10, self.page_title, new_x="LMARGIN", new_y="NEXT", align='C')
        self.set_text_color(0, 0, 0)
        self.ln(6)

    def footer(self):
        self.set_y(-15)
        self.set_font('Helvetica', 'I', 8)
        self.cell(0, 10, 'Solar Site Viability Assessment', align='L')
        self.set_x((self.w / 2) - 10)
        self.cell(20, 10, f'Page {self.page_no()}', align='C')


def render_viability_chart(viability):
    """Horizontal bar chart of the three viability components, as PNG bytes."""
    components = {
        "Irradiance (max 25)": viability["irradiance_points"],
        "Savings (max 25)": viability["savings_points"],
        "Compliance (max 50)": viability["compliance_points"],
    }
    fig, ax = plt.subplots(figsize=(8, 3))
    try:
        ax.barh(list(components.keys()), list(components.values()), color=['#EAB308', '#16A34A', '#2563EB'])
        ax.set_xlim(0, 50)
        ax.set_xlabel("Points")
        ax.set_title(f"Viability Score: {viability['total']:g}/100 ({viability['category']})")
        ax.grid(axis='x', linestyle=':', alpha=0.7)
        fig.tight_layout()

        img_buffer = io.BytesIO()
        fig.savefig(img_buffer, format='png', dpi=150)
        img_buffer.seek(0)
        return img_buffer
    finally:
        plt.close(fig)


# =============== Page Generation Functions ===============
def create_summary_page(pdf, record, viability, generated_at):
    pdf.set_page_title("Site Viability Summary")
    pdf.add_page()

    add_subsection_header(pdf, "Project Overview")
    location = record.location
    coordinates = (
        f"{location.coordinates[0]:.4f}, {location.coordinates[1]:.4f}" if location.coordinates else "N/A"
    )
    overview = {
        "Location": location.address or "N/A",
        "State": location.state or "N/A",
        "Coordinates": coordinates,
        "System Size": f"{record.site_info.system_size_kw:.1f} kW",
        "Roof Area": f"{record.site_info.roof_area_m2:,.0f} m²",
        "Panel Efficiency": f"{record.site_info.panel_efficiency_pct:g}%",
        "Generated On": generated_at.strftime('%Y-%m-%d %H:%M'),
    }
    write_table_from_df(pdf, pd.DataFrame(overview.items(), columns=["Item", "Value"]), col_widths={"Item": 50})
    pdf.ln(6)

    add_subsection_header(pdf, "Project Viability")
    pdf.set_font('Helvetica', 'B', 14)
    pdf.cell(0, 8, viability["category"], new_x="LMARGIN", new_y="NEXT")
    pdf.image(render_viability_chart(viability), w=180)


def create_solar_and_savings_page(pdf, record):
    pdf.set_page_title("Solar Potential & PPA Savings")
    pdf.add_page()

    solar = record.solar_data
    add_subsection_header(pdf, "Solar Analysis")
    solar_rows = {
        "Solar Irradiance": f"{solar.irradiance_kwh_m2_day:g} kWh/m²/day",
        "Irradiance Source": IRRADIANCE_SOURCE_LABELS.get(solar.irradiance_source, solar.irradiance_source),
        "Performance Rating": get_performance_rating(solar.irradiance_kwh_m2_day),
        "Daily Output": f"{solar.daily_output_kwh:,.2f} kWh/day",
        "Annual Output": f"{solar.annual_output_kwh:,.0f} kWh/year",
    }
    if solar.temperature_c is not None:
        solar_rows["Average Temperature"] = f"{solar.temperature_c:.1f} °C"
    write_table_from_df(pdf, pd.DataFrame(solar_rows.items(), columns=["Metric", "Value"]))
    pdf.ln(6)

    savings = record.savings
    add_subsection_header(pdf, "Financial Analysis")
    savings_rows = {
        "Current Usage": f"{savings.current_usage_kwh:,.0f} kWh/month",
        "Current Bill": f"{_naira(savings.current_bill_ngn)}/month",
        "PPA Rate vs Grid Tariff": f"{_naira(savings.ppa_rate_ngn)} vs {_naira(savings.grid_tariff_ngn)} per kWh",
        "Solar Coverage": f"{savings.solar_coverage_pct:g}%",
        "Monthly Savings": _naira(savings.monthly_savings_ngn),
        "Annual Savings": _naira(savings.annual_savings_ngn),
    }
    write_table_from_df(pdf, pd.DataFrame(savings_rows.items(), columns=["Metric", "Value"]))


def create_compliance_page(pdf, record):
    pdf.set_page_title("Regulatory Compliance")
    pdf.add_page()

    compliance = record.compliance
    pdf.set_font('Helvetica', '', 11)
    pdf.multi_cell(
        0, 6,
        f"Overall Score: {compliance.score}%   Mandatory Score: {compliance.mandatory_score}%   "
        f"({compliance.completed_items} of {compliance.total_items} requirements completed)",
    )
    pdf.ln(4)

    checklist_df = pd.DataFrame([
        {
            "Requirement": item.requirement,
            "Authority": item.category,
            "Mandatory": "Yes" if item.mandatory else "No",
            "Status": "Done" if item.satisfied else "Pending",
        }
        for item in compliance.checklist
    ])
    write_table_from_df(pdf, checklist_df, col_widths={"Mandatory": 22, "Status": 20})


# ======= Main PDF Generation Orchestrator =======
def generate_pdf_report(record, generated_at=None):
    """Builds the full PDF report for a finished assessment and returns its bytes."""
    generated_at = generated_at or datetime.now()
    viability = calculate_record_viability(record)

    pdf = PDF(orientation='P', unit='mm', format='A4')
    pdf.set_auto_page_break(auto=True, margin=15)

    create_summary_page(pdf, record, viability, generated_at)
    create_solar_and_savings_page(pdf, record)
    create_compliance_page(pdf, record)

    return bytes(pdf.output())
