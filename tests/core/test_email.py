"""
Tests for the Resend mail transport and the outcome templates.
"""

from unittest.mock import patch

import pytest

from careers.core.config import Settings
from careers.core.email import (
    ResendMailTransport,
    render_acceptance_email,
    render_rejection_email,
)


@pytest.fixture
def configured_settings():
    return Settings(resend_api_key="re_test_key", email_from="HR <hr@example.com>")


@pytest.mark.asyncio
async def test_deliver_without_api_key_logs_instead_of_sending():
    transport = ResendMailTransport(Settings(resend_api_key=None))

    with patch("careers.core.email.resend.Emails.send") as mock_send:
        result = await transport.deliver("a@example.com", "Subject", "<p>Body</p>")

    assert result is True
    mock_send.assert_not_called()


@pytest.mark.asyncio
async def test_deliver_sends_through_resend(configured_settings):
    transport = ResendMailTransport(configured_settings)

    with patch("careers.core.email.resend.Emails.send", return_value={"id": "email_1"}) as mock_send:
        result = await transport.deliver("a@example.com", "Subject", "<p>Body</p>")

    assert result is True
    params = mock_send.call_args.args[0]
    assert params["from"] == "HR <hr@example.com>"
    assert params["to"] == ["a@example.com"]
    assert params["subject"] == "Subject"
    assert params["html"] == "<p>Body</p>"


@pytest.mark.asyncio
async def test_deliver_reports_failure(configured_settings):
    transport = ResendMailTransport(configured_settings)

    with patch("careers.core.email.resend.Emails.send", side_effect=RuntimeError("rate limited")):
        result = await transport.deliver("a@example.com", "Subject", "<p>Body</p>")

    assert result is False


class TestTemplates:
    """Tests for the outcome email templates."""

    def test_acceptance(self):
        subject, html = render_acceptance_email("Amina Benali", "Backend Developer", "Acme")

        assert subject == "Your application has been accepted"
        assert "Hello Amina Benali" in html
        assert "<strong>Backend Developer</strong>" in html
        assert "The HR Team - Acme" in html

    def test_rejection(self):
        subject, html = render_rejection_email("Amina Benali", "Backend Developer", "Acme")

        assert subject == "An update on your application"
        assert "not been selected" in html

    def test_default_company_name(self):
        _, html = render_acceptance_email("Amina", "Developer")
        assert "The HR Team - " in html

    def test_escapes_values(self):
        _, html = render_rejection_email('"><img src=x>', "R&D", "Acme")
        assert "<img" not in html
        assert "R&amp;D" in html
