import sys, os
import json
from datetime import datetime
import pytest
from botocore.exceptions import ClientError
from unittest.mock import MagicMock

current_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.dirname(current_dir)
sys.path.insert(0, project_root)

from solar_ppa_engine.assessment_models import (
    AssessmentRecord, Compliance, Location, Savings, SiteInfo, SolarData, default_checklist
)
from solar_ppa_engine.pdf_generator import generate_pdf_report
from solar_ppa_engine.report_assembler import REPORT_TITLE, assemble_report, build_report_payload
from solar_ppa_engine.report_delivery import REPORT_EMAIL_SUBJECT, is_valid_email, send_report_email

GENERATED_AT = datetime(2026, 10, 19, 14, 30)


@pytest.fixture
def abuja_record():
    """A finished assessment for a 150 m² commercial roof in the FCT."""
    checklist = default_checklist()
    for item in checklist:
        item.satisfied = item.mandatory
    return AssessmentRecord(
        location=Location(address="Garki, Abuja, Federal Capital Territory, Nigeria", state="FCT",
                          coordinates=(9.0765, 7.3986)),
        site_info=SiteInfo(roof_area_m2=150, panel_efficiency_pct=20, system_size_kw=4.5),
        solar_data=SolarData(daily_output_kwh=22.95, annual_output_kwh=8376.75,
                             irradiance_kwh_m2_day=5.1, irradiance_source="state_table"),
        savings=Savings(current_usage_kwh=2000, current_bill_ngn=450000, solar_coverage_pct=34.4,
                        monthly_savings_ngn=30983, annual_savings_ngn=371796),
        compliance=Compliance(checklist=checklist, score=71, mandatory_score=100,
                              completed_items=5, total_items=7),
    )


# ======================= TEXT REPORT =======================
def test_assemble_report_contains_every_section(abuja_record):
    report = assemble_report(abuja_record, GENERATED_AT)

    assert report.startswith(REPORT_TITLE)
    for section in ["SITE INFORMATION", "SOLAR POTENTIAL", "PPA SAVINGS", "COMPLIANCE SCORE", "VIABILITY"]:
        assert section in report
    assert "State: FCT" in report
    assert "System Size: 4.5 kW" in report
    assert "Daily Output: 22.95 kWh/day" in report
    assert "Monthly Savings: ₦30,983" in report
    assert "Overall Score: 71%" in report
    assert "Status: Viable" in report  # 15 + 15 + 35.5
    assert "Generated on: 2026-10-19 14:30" in report


def test_assemble_report_is_deterministic(abuja_record):
    assert assemble_report(abuja_record, GENERATED_AT) == assemble_report(abuja_record, GENERATED_AT)


def test_assemble_report_lists_checklist(abuja_record):
    report = assemble_report(abuja_record, GENERATED_AT)
    ticked = [line for line in report.splitlines() if line.startswith("  [x]")]
    open_items = [line for line in report.splitlines() if line.startswith("  [ ]")]
    assert len(ticked) == 5
    assert len(open_items) == 2
    assert all("(mandatory)" in line for line in ticked)


def test_assemble_report_for_empty_record():
    report = assemble_report(AssessmentRecord(), GENERATED_AT)
    assert "Coordinates: Not selected" in report
    assert "Monthly Savings: Not calculated" in report
    assert "Average Temperature" not in report
    assert "Status: Needs Attention" in report


def test_report_payload_is_structured(abuja_record):
    payload = build_report_payload(abuja_record, GENERATED_AT)
    assert payload["location"]["coordinates"] == {"lat": 9.0765, "lng": 7.3986}
    assert payload["solar_data"]["performance_rating"] == "Good"
    assert payload["viability"]["total"] == 65.5
    assert payload["generated_at"] == "2026-10-19T14:30:00"
    assert len(payload["compliance"]["checklist"]) == 7


def test_report_payload_exports_as_json(abuja_record):
    exported = json.dumps(build_report_payload(abuja_record, GENERATED_AT), ensure_ascii=False, indent=2)
    restored = json.loads(exported)
    assert restored["title"] == REPORT_TITLE
    assert restored["location"]["coordinates"]["lat"] == 9.0765
    assert restored["viability"]["category"] == "Viable"


# ======================= PDF REPORT =======================
def test_generate_pdf_report_returns_pdf_bytes(abuja_record):
    pdf_bytes = generate_pdf_report(abuja_record, GENERATED_AT)
    assert isinstance(pdf_bytes, bytes)
    assert pdf_bytes.startswith(b"%PDF")
    assert len(pdf_bytes) > 1000


def test_generate_pdf_report_with_non_latin_address(abuja_record):
    abuja_record.location.address = "Ọ̀yọ́ Road, Ìbàdàn, Nigeria"
    assert generate_pdf_report(abuja_record, GENERATED_AT).startswith(b"%PDF")


# ======================= E-MAIL DELIVERY =======================
@pytest.mark.parametrize("address, expected", [
    ("ada@example.com.ng", True),
    ("  ada@example.com  ", True),
    ("ada@example", False),
    ("not an email", False),
    ("", False),
])
def test_is_valid_email(address, expected):
    assert is_valid_email(address) == expected


def test_send_report_email_success():
    ses_client = MagicMock()
    ses_client.send_email.return_value = {"MessageId": "0100018c-abc"}

    result = send_report_email(ses_client, " ada@example.com ", "REPORT", sender="reports@example.com")

    assert result == {"message_id": "0100018c-abc"}
    kwargs = ses_client.send_email.call_args.kwargs
    assert kwargs["Source"] == "reports@example.com"
    assert kwargs["Destination"] == {"ToAddresses": ["ada@example.com"]}
    assert kwargs["Message"]["Subject"]["Data"] == REPORT_EMAIL_SUBJECT
    assert kwargs["Message"]["Body"]["Text"]["Data"] == "REPORT"


def test_send_report_email_ses_failure():
    ses_client = MagicMock()
    ses_client.send_email.side_effect = ClientError(
        {"Error": {"Code": "MessageRejected", "Message": "Email address is not verified."}}, "SendEmail"
    )
    result = send_report_email(ses_client, "ada@example.com", "REPORT", sender="reports@example.com")
    assert "error" in result
    assert "not verified" in result["error"]


@pytest.mark.parametrize("ses_client, recipient, sender", [
    (None, "ada@example.com", "reports@example.com"),
    (MagicMock(), "ada@example.com", None),
    (MagicMock(), "ada(at)example.com", "reports@example.com"),
])
def test_send_report_email_refuses_without_prerequisites(ses_client, recipient, sender):
    result = send_report_email(ses_client, recipient, "REPORT", sender=sender)
    assert "error" in result
    if ses_client is not None:
        ses_client.send_email.assert_not_called()
