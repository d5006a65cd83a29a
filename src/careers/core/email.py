"""
Email Service using Resend

Mail transport and message templates for applicant outcome notifications.
"""

import asyncio
import logging
from html import escape

import resend

from careers.core.config import Settings, settings

logger = logging.getLogger(__name__)

_BASE_STYLE = """
            body {{ font-family: system-ui, -apple-system, sans-serif; line-height: 1.6; color: #1f2937; }}
            .container {{ max-width: 600px; margin: 0 auto; padding: 40px 20px; }}
            .header {{ color: {header_color}; margin-bottom: 24px; }}
            .footer {{ margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 14px; }}
"""


class ResendMailTransport:
    """
    Mail transport backed by the Resend HTTP API.

    `deliver` never raises: failures are logged and reported as False.
    """

    def __init__(self, config: Settings | None = None):
        config = config or settings
        self.api_key = config.resend_api_key
        self.email_from = config.email_from

    async def deliver(self, to_address: str, subject: str, html_body: str) -> bool:
        """
        Send an email using Resend.

        Args:
            to_address: Recipient email address
            subject: Email subject line
            html_body: HTML content of the email

        Returns:
            True if email was sent successfully
        """
        if not self.api_key:
            logger.warning("RESEND_API_KEY not set - logging email instead of sending")
            logger.info(f"EMAIL TO: {to_address} | SUBJECT: {subject}")
            return True

        try:
            resend.api_key = self.api_key
            params: resend.Emails.SendParams = {
                "from": self.email_from,
                "to": [to_address],
                "subject": subject,
                "html": html_body,
            }

            # Run sync Resend call in thread pool to avoid blocking event loop
            email = await asyncio.to_thread(resend.Emails.send, params)
            logger.info(f"Email sent successfully to {to_address}, id: {email['id']}")
            return True
        except Exception as e:
            logger.error(f"Failed to send email to {to_address}: {e}")
            return False


def render_acceptance_email(
    applicant_name: str,
    role_label: str,
    company_name: str | None = None,
) -> tuple[str, str]:
    """Build the (subject, html) pair telling an applicant they were accepted."""
    safe_applicant_name = escape(applicant_name)
    safe_role_label = escape(role_label)
    safe_company_name = escape(company_name or settings.company_name)

    html_content = f"""
    <!DOCTYPE html>
    <html>
    <head>
        <style>
            {_BASE_STYLE.format(header_color="#2e7d32")}
        </style>
    </head>
    <body>
        <div class="container">
            <h2 class="header">Hello {safe_applicant_name},</h2>

            <p>We are pleased to inform you that your application for <strong>{safe_role_label}</strong> has been <strong>accepted</strong>.</p>

            <p>Our team will contact you shortly to schedule an interview or finalise the next steps of the process.</p>

            <p>Thank you for your trust and for your interest in <strong>{safe_company_name}</strong>.</p>

            <div class="footer">
                <p>Kind regards,</p>
                <p>The HR Team - {safe_company_name}</p>
            </div>
        </div>
    </body>
    </html>
    """
    return "Your application has been accepted", html_content


def render_rejection_email(
    applicant_name: str,
    role_label: str,
    company_name: str | None = None,
) -> tuple[str, str]:
    """Build the (subject, html) pair telling an applicant they were not selected."""
    safe_applicant_name = escape(applicant_name)
    safe_role_label = escape(role_label)
    safe_company_name = escape(company_name or settings.company_name)

    html_content = f"""
    <!DOCTYPE html>
    <html>
    <head>
        <style>
            {_BASE_STYLE.format(header_color="#d32f2f")}
        </style>
    </head>
    <body>
        <div class="container">
            <h2 class="header">Hello {safe_applicant_name},</h2>

            <p>Thank you for applying for <strong>{safe_role_label}</strong> at <strong>{safe_company_name}</strong>.</p>

            <p>After reviewing your application, we regret to inform you that it has not been selected this time.</p>

            <p>We encourage you to apply for future opportunities that match your profile.</p>

            <div class="footer">
                <p>Kind regards,</p>
                <p>The HR Team - {safe_company_name}</p>
            </div>
        </div>
    </body>
    </html>
    """
    return "An update on your application", html_content
