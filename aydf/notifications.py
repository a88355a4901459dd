import logging

import httpx

from .config import EmailConfig

logger = logging.getLogger(__name__)


def receipt_params(donation: dict) -> dict:
    return {
        "to_name": donation["donor_name"],
        "to_email": donation["donor_email"],
        "amount": f"₹{donation['amount']}",
        "payment_id": donation["payment_id"],
        "donation_id": str(donation["donation_id"]),
        "program": donation["program"].replace("-", " ").upper(),
        "date": donation["paid_at"].strftime("%d %B %Y"),
    }


def send_donation_receipt(donation: dict, config: EmailConfig) -> dict:
    """Send a donation receipt through EmailJS.

    Runs as a background task after the verification response went out, so it
    reports failures in the returned dict and the log instead of raising.
    """
    if not config.is_configured:
        logger.warning("EmailJS is not configured, skipping receipt for donation %s", donation.get("donation_id"))
        return {"success": False, "error": "Email service not configured"}

    try:
        payload = {
            "service_id": config.service_id,
            "template_id": config.template_id,
            "user_id": config.public_key,
            "template_params": receipt_params(donation),
        }
        if config.private_key:
            payload["accessToken"] = config.private_key

        response = httpx.post(config.api_url, json=payload, timeout=config.timeout)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        logger.error("EmailJS rejected receipt for donation %s: %s %s",
                     donation.get("donation_id"), e.response.status_code, e.response.text)
        return {"success": False, "error": f"EmailJS returned {e.response.status_code}"}
    except (httpx.HTTPError, KeyError, AttributeError) as e:
        logger.error("Failed to send donation receipt for donation %s: %s", donation.get("donation_id"), e)
        return {"success": False, "error": str(e)}

    logger.info("Donation receipt sent to %s", donation["donor_email"])
    return {"success": True, "status": response.status_code}
