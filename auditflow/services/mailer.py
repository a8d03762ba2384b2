"""Sends login verification codes through the Resend e-mail API."""
import logging
from dataclasses import dataclass
from typing import Optional

import requests
from markupsafe import escape

logger = logging.getLogger(__name__)

OTP_EMAIL_TEMPLATE = """<!DOCTYPE html>
<html>
<body style="font-family: Arial, sans-serif; background-color: #f5f5f5; padding: 20px;">
  <div style="max-width: 480px; margin: 0 auto; background-color: white; border-radius: 12px; padding: 32px 24px;">
    <h2 style="color: #1f2937;">Verification Code</h2>
    <p>Hello {name},</p>
    <p>Use the following code to complete your sign-in. It expires in {minutes} minutes.</p>
    <p style="font-size: 32px; font-weight: 700; letter-spacing: 8px; text-align: center;">{code}</p>
    <p style="color: #6b7280; font-size: 12px;">If you did not try to sign in, you can ignore this email.</p>
  </div>
</body>
</html>"""


@dataclass
class DispatchResult:
    success: bool
    error: Optional[str] = None


class OTPMailer:
    def __init__(self, api_url, api_key, sender, subject, timeout=10,
                 suppress_send=False, ttl_minutes=5):
        self.api_url = api_url
        self.api_key = api_key
        self.sender = sender
        self.subject = subject
        self.timeout = timeout
        self.suppress_send = suppress_send
        self.ttl_minutes = ttl_minutes
        # Messages recorded instead of sent when suppress_send is on
        self.outbox = []

    def build_message(self, email, code, display_name=None):
        html = OTP_EMAIL_TEMPLATE.format(
            name=escape(display_name or email),
            minutes=self.ttl_minutes,
            code=escape(code),
        )
        return {'from': self.sender, 'to': [email], 'subject': self.subject, 'html': html}

    def send_one_time_code(self, email, code, display_name=None):
        if not email or not code:
            return DispatchResult(False, 'Email and OTP are required')

        message = self.build_message(email, code, display_name)
        if self.suppress_send:
            self.outbox.append({'email': email, 'code': code, 'message': message})
            logger.info("Suppressed verification email to %s", email)
            return DispatchResult(True)

        if not self.api_key:
            logger.error("No e-mail API key configured, cannot send verification code")
            return DispatchResult(False, 'Email service is not configured')

        try:
            response = requests.post(
                self.api_url,
                json=message,
                headers={'Authorization': f'Bearer {self.api_key}'},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error("Verification email request failed: %s", e)
            return DispatchResult(False, str(e))

        if not response.ok:
            logger.error("Email API answered %s: %s", response.status_code, response.text[:200])
            return DispatchResult(False, f'Email API error {response.status_code}')

        logger.info("Verification email sent to %s", email)
        return DispatchResult(True)
