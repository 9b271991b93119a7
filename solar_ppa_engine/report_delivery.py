import logging
import re

from botocore.exceptions import BotoCoreError, ClientError

# --- Logger for the e-mail sink ---
delivery_logger = logging.getLogger('report_delivery')

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
REPORT_EMAIL_SUBJECT = "Your NigeriaSolar PPA Site Assessment"
SENDER_EMAIL_HOLDER = {"address": None}  # Filled from secrets by the app


def is_valid_email(address):
    return bool(address) and EMAIL_PATTERN.match(address.strip()) is not None


def send_report_email(ses_client, recipient, report_text, sender=None):
    """
    Sends the plain-text report through Amazon SES.
    Returns {"message_id": ...} on success or {"error": ...}; never raises.
    """
    sender = sender or SENDER_EMAIL_HOLDER["address"]

    if ses_client is None:
        return {"error": "E-mail service (SES) is not configured or failed to initialize."}
    if not sender:
        return {"error": "No sender address configured for report e-mails."}
    if not is_valid_email(recipient):
        return {"error": f"'{recipient}' is not a valid e-mail address."}

    recipient = recipient.strip()
    delivery_logger.info(f"Sending assessment report, report_len={len(report_text)}")
    try:
        response = ses_client.send_email(
            Source=sender,
            Destination={"ToAddresses": [recipient]},
            Message={
                "Subject": {"Data": REPORT_EMAIL_SUBJECT, "Charset": "UTF-8"},
                "Body": {"Text": {"Data": report_text, "Charset": "UTF-8"}},
            },
        )
    except (BotoCoreError, ClientError) as e:
        delivery_logger.error(f"SES send_email failed: {e}")
        return {"error": f"An error occurred while sending the report: {e}"}

    message_id = response.get("MessageId")
    delivery_logger.info(f"Report e-mail accepted by SES, message_id={message_id}")
    return {"message_id": message_id}
