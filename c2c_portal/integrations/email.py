# =============================================================================
# Email Delivery Integration (AWS SES)
# =============================================================================
#
# Setup:
#   1. Verify your sending email in AWS SES console
#   2. Set env vars:
#      - AWS_SES_FROM_EMAIL=noreply@yourdomain.com
#      - AWS_ACCESS_KEY_ID=...
#      - AWS_SECRET_ACCESS_KEY=...
#      - AWS_REGION=us-east-1
#
# Note: In SES sandbox mode, you can only send to verified emails.
#
# =============================================================================

import asyncio
import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from c2c_portal.config import Settings, get_settings

logger = logging.getLogger(__name__)


# =============================================================================
# Email Templates
# =============================================================================

ROLE_HIGHLIGHTS = {
    "student": [
        "Browse and apply for internships",
        "Track your application status",
        "Complete skill assessments",
    ],
    "faculty": [
        "Monitor student progress",
        "Approve internship applications",
        "Generate reports",
    ],
    "industry": [
        "Post internship opportunities",
        "Review candidate applications",
        "Manage your company profile",
    ],
}

TEMPLATES = {
    "welcome": {
        "subject": "Welcome to C2C Platform!",
        "html": """
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
            <h2 style="color: #2563eb;">Welcome to C2C Platform!</h2>
            <p>Hi {name},</p>
            <p>Welcome to the Campus-to-Corporate platform! Your {role} account has been successfully created.</p>
            <p>You can now:</p>
            <ul>{highlights_html}</ul>
            {verify_html}
            <p>Best regards,<br>The C2C Team</p>
        </div>
        """,
        "text": """
Hi {name},

Welcome to the Campus-to-Corporate platform! Your {role} account has been successfully created.

You can now:
{highlights_text}
{verify_text}
Best regards,
The C2C Team
        """,
    },

    "password_reset": {
        "subject": "Password Reset Request",
        "html": """
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
            <h2 style="color: #2563eb;">Password Reset Request</h2>
            <p>Hi {name},</p>
            <p>You requested a password reset. Click the link below to reset your password:</p>
            <p><a href="{reset_url}" style="background: #2563eb; color: white; padding: 10px 20px; text-decoration: none; border-radius: 5px;">Reset Password</a></p>
            <p>This link will expire in {expires_minutes} minutes.</p>
            <p>If you didn't request this, please ignore this email.</p>
            <p>Best regards,<br>The C2C Team</p>
        </div>
        """,
        "text": """
Hi {name},

You requested a password reset. Visit this link to reset your password:
{reset_url}

This link will expire in {expires_minutes} minutes.

If you didn't request this, please ignore this email.
        """,
    },

    "email_verified": {
        "subject": "Email verified - Welcome to C2C!",
        "html": """
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
            <h2 style="color: #2563eb;">You're all set!</h2>
            <p>Your email has been verified. You now have full access to your dashboard.</p>
            <p><a href="{app_url}">Go to dashboard</a></p>
        </div>
        """,
        "text": """
You're all set!

Your email has been verified. Go to your dashboard: {app_url}
        """,
    },
}


# =============================================================================
# Email Service
# =============================================================================

class EmailService:
    """Send emails via AWS SES."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self._client = None

    @property
    def client(self):
        """Lazy-load SES client."""
        if self._client is None and self.settings.use_aws:
            self._client = boto3.client(
                "ses",
                region_name=self.settings.aws_region,
                aws_access_key_id=self.settings.aws_access_key_id,
                aws_secret_access_key=self.settings.aws_secret_access_key,
            )
        return self._client

    @property
    def is_configured(self) -> bool:
        """Check if email sending is properly configured."""
        return self.settings.use_aws and bool(self.settings.aws_ses_from_email)

    @property
    def app_url(self) -> str:
        return self.settings.frontend_url.rstrip("/")

    async def send(
        self,
        to: str,
        template: str,
        data: dict[str, Any] | None = None,
        subject_override: str | None = None,
    ) -> bool:
        """
        Send an email using a template.

        Returns:
            True if sent successfully, False otherwise. Callers decide
            whether a failed delivery is fatal.
        """
        if template not in TEMPLATES:
            logger.error(f"Unknown email template: {template}")
            return False

        tpl = TEMPLATES[template]
        data = data or {}

        if not self.is_configured:
            logger.warning(f"Email not configured - would send '{template}' to {to}")
            return False

        try:
            subject = subject_override or tpl["subject"]
            html_body = tpl["html"].format(**data)
            text_body = tpl["text"].format(**data)
        except KeyError as e:
            logger.error(f"Missing template variable for '{template}': {e}")
            return False

        try:
            response = await asyncio.to_thread(
                self.client.send_email,
                Source=self.settings.aws_ses_from_email,
                Destination={"ToAddresses": [to]},
                Message={
                    "Subject": {"Data": subject, "Charset": "UTF-8"},
                    "Body": {
                        "Html": {"Data": html_body, "Charset": "UTF-8"},
                        "Text": {"Data": text_body, "Charset": "UTF-8"},
                    },
                },
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to send email to {to}: {e}")
            return False

        logger.info(f"Email sent to {to}: {template} (MessageId: {response['MessageId']})")
        return True

    async def send_welcome(
        self,
        email: str,
        name: str,
        role: str,
        verify_token: str | None = None,
    ) -> bool:
        """Send welcome email, with a verification link when a token is given."""
        highlights = ROLE_HIGHLIGHTS.get(role, [])
        data = {
            "name": name,
            "role": role,
            "highlights_html": "".join(f"<li>{h}</li>" for h in highlights),
            "highlights_text": "\n".join(f"  - {h}" for h in highlights),
            "verify_html": "",
            "verify_text": "",
        }
        if verify_token:
            verify_url = f"{self.app_url}/verify-email?token={verify_token}"
            data["verify_html"] = f'<p><a href="{verify_url}">Click here to verify your email</a></p>'
            data["verify_text"] = f"\nVerify your email: {verify_url}\n"
        return await self.send(to=email, template="welcome", data=data)

    async def send_password_reset(
        self,
        email: str,
        name: str,
        reset_token: str,
        expires_minutes: int = 10,
    ) -> bool:
        """Send password reset email."""
        reset_url = f"{self.app_url}/reset-password?token={reset_token}"
        return await self.send(
            to=email,
            template="password_reset",
            data={"name": name, "reset_url": reset_url, "expires_minutes": expires_minutes},
        )

    async def send_email_verified(self, email: str) -> bool:
        """Send confirmation that email was verified."""
        return await self.send(
            to=email,
            template="email_verified",
            data={"app_url": self.app_url},
        )
