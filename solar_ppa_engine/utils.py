from decimal import Decimal, ROUND_HALF_UP

# --- Important Constants ---
PANEL_AREA_FACTOR = 0.15  # kW per m² of roof at 100% panel efficiency (after spacing & losses)
DEFAULT_PANEL_EFFICIENCY_PCT = 20
MIN_PANEL_EFFICIENCY_PCT = 15
MAX_PANEL_EFFICIENCY_PCT = 25
MAX_ROOF_AREA_M2 = 10000

PPA_RATE_NGN = 180  # Fixed PPA price per kWh
GRID_TARIFF_NGN = 225  # Band A grid tariff per kWh, used as the savings baseline
DAYS_PER_MONTH = 30
DAYS_PER_YEAR = 365
MONTHS_PER_YEAR = 12

DEFAULT_IRRADIANCE_KWH_M2_DAY = 4.5  # Used when a state is missing from the table
DEFAULT_TOTAL_COMPLIANCE_ITEMS = 7

# Share of MANDATORY compliance items that must be ticked before the wizard may move on to Results.
# Deployments can override it with the COMPLIANCE_GATE_THRESHOLD_PCT secret.
MANDATORY_COMPLIANCE_THRESHOLD_PCT = 80

# --- Viability Scoring Tiers ---
# (minimum value, points) pairs, checked top-down; anything below the last tier earns the floor.
IRRADIANCE_POINT_TIERS = [(5.5, 25), (4.5, 15)]
SAVINGS_POINT_TIERS = [(50000, 25), (20000, 15)]
TIER_FLOOR_POINTS = 5
COMPLIANCE_POINT_WEIGHT = 0.5
HIGHLY_VIABLE_MIN_SCORE = 70
VIABLE_MIN_SCORE = 50

# --- Solar Irradiance by State (kWh/m²/day) ---
# Long-run averages per state; FCT is the Federal Capital Territory (Abuja).
STATE_IRRADIANCE = {
    "Lagos": 4.2, "FCT": 5.1, "Rivers": 4.0, "Kaduna": 5.3, "Kano": 5.8,
    "Ogun": 4.3, "Oyo": 4.7, "Plateau": 5.4, "Delta": 3.9, "Imo": 4.1,
    "Cross River": 3.8, "Enugu": 4.4, "Anambra": 4.2, "Edo": 4.0, "Ondo": 4.5,
    "Osun": 4.6, "Ekiti": 4.8, "Kwara": 5.0, "Niger": 5.2, "Benue": 4.9,
    "Nasarawa": 5.0, "Taraba": 4.7, "Adamawa": 5.1, "Bauchi": 5.4, "Gombe": 5.6,
    "Yobe": 5.9, "Borno": 6.1, "Jigawa": 5.7, "Katsina": 5.8, "Kebbi": 6.0,
    "Sokoto": 6.2, "Zamfara": 5.9, "Abia": 4.0, "Akwa Ibom": 3.7, "Bayelsa": 3.5,
    "Ebonyi": 4.3, "Kogi": 4.8,
}

NIGERIAN_STATES = [
    "Abia", "Adamawa", "Akwa Ibom", "Anambra", "Bauchi", "Bayelsa", "Benue", "Borno",
    "Cross River", "Delta", "Ebonyi", "Edo", "Ekiti", "Enugu", "Gombe", "Imo",
    "Jigawa", "Kaduna", "Kano", "Katsina", "Kebbi", "Kogi", "Kwara", "Lagos",
    "Nasarawa", "Niger", "Ogun", "Ondo", "Osun", "Oyo", "Plateau", "Rivers",
    "Sokoto", "Taraba", "Yobe", "Zamfara", "FCT",
]

# Approximate bounding box used to reject picks outside the country
NIGERIA_BOUNDS = {"min_lat": 4.0, "max_lat": 14.0, "min_lng": 2.5, "max_lng": 15.0}
NIGERIA_MAP_CENTER = (9.0820, 8.6753)

QUICK_LOCATIONS = [
    {"name": "Lagos", "state": "Lagos", "lat": 6.5244, "lng": 3.3792},
    {"name": "Abuja", "state": "FCT", "lat": 9.0765, "lng": 7.3986},
    {"name": "Kano", "state": "Kano", "lat": 12.0022, "lng": 8.5920},
    {"name": "Port Harcourt", "state": "Rivers", "lat": 4.8156, "lng": 7.0498},
    {"name": "Ibadan", "state": "Oyo", "lat": 7.3775, "lng": 3.9470},
    {"name": "Kaduna", "state": "Kaduna", "lat": 10.5105, "lng": 7.4165},
]

# --- Quick-fill Presets ---
SITE_PRESETS = {
    "small": {"label": "Small Rooftop (50 m²)", "roof_area_m2": 50, "panel_efficiency_pct": 18},
    "medium": {"label": "Medium Commercial (150 m²)", "roof_area_m2": 150, "panel_efficiency_pct": 20},
    "large": {"label": "Large Industrial (300 m²)", "roof_area_m2": 300, "panel_efficiency_pct": 22},
}

USAGE_PRESETS = {
    "residential": {"label": "Residential", "current_usage_kwh": 500, "current_bill_ngn": 112500},
    "commercial": {"label": "Commercial", "current_usage_kwh": 2000, "current_bill_ngn": 450000},
    "industrial": {"label": "Industrial", "current_usage_kwh": 10000, "current_bill_ngn": 2250000},
}

# --- Regulatory Checklist ---
COMPLIANCE_REQUIREMENTS = [
    {
        "id": 1,
        "category": "NERC (Nigerian Electricity Regulatory Commission)",
        "requirement": "Embedded Generation License Application",
        "description": "Required for solar installations > 1MW or grid-connected systems",
        "mandatory": True,
        "link": "https://nerc.gov.ng",
    },
    {
        "id": 2,
        "category": "NERC",
        "requirement": "Grid Connection Agreement",
        "description": "Agreement with Distribution Company (DisCo) for grid interconnection",
        "mandatory": True,
        "link": "https://nerc.gov.ng",
    },
    {
        "id": 3,
        "category": "SON (Standards Organisation of Nigeria)",
        "requirement": "Equipment Standards Compliance",
        "description": "Solar panels and inverters must meet Nigerian Industrial Standards (NIS)",
        "mandatory": True,
        "link": "https://son.gov.ng",
    },
    {
        "id": 4,
        "category": "NESREA (Environmental Agency)",
        "requirement": "Environmental Impact Assessment",
        "description": "Required for large-scale installations (>10MW typically)",
        "mandatory": False,
        "link": "https://nesrea.gov.ng",
    },
    {
        "id": 5,
        "category": "Local Government",
        "requirement": "Building/Construction Permits",
        "description": "Local permits for structural modifications and installations",
        "mandatory": True,
        "link": None,
    },
    {
        "id": 6,
        "category": "Fire Safety",
        "requirement": "Fire Safety Compliance",
        "description": "Fire safety clearance for commercial installations",
        "mandatory": True,
        "link": None,
    },
    {
        "id": 7,
        "category": "Insurance",
        "requirement": "Project Insurance Coverage",
        "description": "Comprehensive insurance for PPA project assets",
        "mandatory": False,
        "link": None,
    },
]

# --- Recommended follow-ups on the Results screen, keyed by viability category ---
NEXT_STEPS = {
    "Highly Viable": [
        "Request formal quotes from certified PPA developers.",
        "Begin the NERC embedded generation license application.",
        "Schedule a structural assessment of the roof.",
    ],
    "Viable": [
        "Complete the outstanding mandatory compliance items.",
        "Confirm your monthly usage with 12 months of utility bills.",
        "Compare offers from at least two PPA providers.",
    ],
    "Needs Attention": [
        "Review the mandatory regulatory requirements with a consultant.",
        "Consider a larger roof area or higher-efficiency panels.",
        "Re-check your usage and bill figures before proceeding.",
    ],
}

# --- Static Tooltips / Helper Texts ---
TOOLTIPS = {
    # --- Step 1: Location ---
    "address_search": "Type at least 3 characters of a street, district or city in Nigeria and pick one of the matches.",
    "coordinates": "Latitude/longitude of the site. Picking a point fetches its address and a satellite irradiance average.",
    "state_override": "The state decides which irradiance value is used if satellite data is unavailable.",

    # --- Step 2: Site Info ---
    "roof_area_m2": "Enter the total roof area available for solar panel installation.",
    "panel_efficiency_pct": "Higher efficiency panels generate more power per square meter.",

    # --- Step 3: Solar Potential ---
    "irradiance": "Average daily solar energy received per square meter (kWh/m²/day).",

    # --- Step 4: Savings ---
    "current_usage_kwh": "Your average monthly electricity usage (in kWh) from your DisCo bill.",
    "current_bill_ngn": "Your average monthly electricity bill in Naira.",
    "ppa_rate_ngn": "The fixed price per kWh paid to the PPA provider, compared against the Band A grid tariff.",

    # --- Step 5: Compliance ---
    "mandatory_score": "Share of mandatory requirements already satisfied. This gates the Results step.",

    # --- Step 6: Results ---
    "viability": "Up to 25 points for irradiance, 25 for savings and 50 for compliance (score × 0.5).",
    "report_email": "The plain-text report is sent from our reporting address via Amazon SES.",
}


def round_half_up(value, digits=0):
    """
    Rounds like a person would (2.5 -> 3), instead of Python's banker's rounding.
    Returns an int when `digits` is 0.
    """
    quantum = Decimal(1).scaleb(-digits)
    # Drop binary float noise first, e.g. 9 * 0.15 == 1.3499999999999999
    rounded = Decimal(str(round(float(value), 9))).quantize(quantum, rounding=ROUND_HALF_UP)
    if digits == 0:
        return int(rounded)
    return float(rounded)


def format_naira(amount, symbol="₦"):
    """Formats a Naira amount with thousands separators, e.g. ₦30,983."""
    if amount is None:
        return "N/A"
    return f"{symbol}{amount:,.0f}"


# --- Progress Badge Utility ---
def generate_progress_bar_markdown(steps, current_index, final_step_completed=False):
    """
    Generates markdown for a progress bar with completed, current, and future steps highlighted.
    `steps` is the ordered sequence of step bindings from the wizard.
    """
    current_step_num = len(steps) + 1 if final_step_completed else current_index

    progress_display_list = []
    for step in steps:
        step_label = f"{step.index + 1}: {step.title}"
        if step.index < current_step_num:
            # Completed step: Green badge
            progress_display_list.append(f":green-badge[:material/task_alt: {step_label}]")
        elif step.index == current_index:
            # Current/active step: Violet badge
            progress_display_list.append(f":violet-badge[:material/screen_record: {step_label}]")
        else:
            # Not yet visited step: Grey badge
            progress_display_list.append(f":grey-badge[:material/radio_button_partial: {step_label}]")

    return " **--** ".join(progress_display_list)
