"""Email integration utilities for sending emails."""

import smtplib
from html import escape
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional, List
import logging

from core.config import settings

logger = logging.getLogger(__name__)


class EmailService:
    """Email service for sending emails via SMTP."""

    def __init__(
        self,
        smtp_host: Optional[str] = None,
        smtp_port: Optional[int] = None,
        smtp_user: Optional[str] = None,
        smtp_password: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
        use_tls: Optional[bool] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize email service.

        Args:
            smtp_host: SMTP server host
            smtp_port: SMTP server port
            smtp_user: SMTP username
            smtp_password: SMTP password
            from_email: Default sender email
            from_name: Default sender name
            use_tls: Whether to issue STARTTLS
            timeout: Socket timeout in seconds
        """
        self.smtp_host = smtp_host or settings.smtp_host
        self.smtp_port = smtp_port or settings.smtp_port
        self.smtp_user = smtp_user or settings.smtp_user
        self.smtp_password = smtp_password or settings.smtp_password
        self.from_email = from_email or settings.from_email
        self.from_name = from_name or settings.from_name
        self.use_tls = settings.smtp_use_tls if use_tls is None else use_tls
        self.timeout = timeout or settings.collaborator_timeout_seconds

    def build_message(
        self,
        to_email: str | List[str],
        subject: str,
        body: str,
        html: bool = False,
    ) -> MIMEMultipart:
        msg = MIMEMultipart()
        msg['From'] = f"{self.from_name} <{self.from_email}>"
        msg['To'] = ", ".join(to_email) if isinstance(to_email, list) else to_email
        msg['Subject'] = subject
        msg.attach(MIMEText(body, 'html' if html else 'plain'))
        return msg

    def send_email(
        self,
        to_email: str | List[str],
        subject: str,
        body: str,
        html: bool = False,
    ) -> bool:
        """
        Send an email. Blocking; run it in a worker thread from async code.

        Args:
            to_email: Recipient email address(es)
            subject: Email subject
            body: Email body
            html: Whether body is HTML

        Returns:
            True if email sent successfully
        """
        recipients = to_email if isinstance(to_email, list) else [to_email]
        msg = self.build_message(to_email, subject, body, html)

        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.smtp_user and self.smtp_password:
                    server.login(self.smtp_user, self.smtp_password)
                server.send_message(msg, from_addr=self.from_email, to_addrs=recipients)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email: {e}")
            return False

        logger.info(f"Email sent: {subject}")
        return True


# Pre-configured email templates
class EmailTemplates:
    """Pre-configured email templates."""

    @staticmethod
    def email_verification(user_name: str, verify_url: str, ttl_hours: int) -> dict:
        """Email address verification template."""
        return {
            'subject': 'Verify your email address',
            'body': f"""
                <html>
                <body>
                    <h2>Hi {escape(user_name)},</h2>
                    <p>Please confirm your email address by opening the link below.</p>
                    <p><a href="{verify_url}">{verify_url}</a></p>
                    <p>The link expires in {ttl_hours} hours.</p>
                </body>
                </html>
            """,
            'html': True
        }

    @staticmethod
    def application_status(
        applicant_name: str,
        job_title: str,
        organization_name: str,
        status: str,
        notes: Optional[str] = None,
    ) -> dict:
        """Application accepted/rejected template."""
        job_title, organization_name = escape(job_title), escape(organization_name)
        if status == "accepted":
            headline = f"Congratulations! Your application for {job_title} at {organization_name} has been accepted."
        else:
            headline = f"Thank you for applying for {job_title} at {organization_name}. Unfortunately your application was not selected."

        notes_html = f"<p>Notes from the recruiter: {escape(notes)}</p>" if notes else ""
        return {
            'subject': f"Application update: {job_title}",
            'body': f"""
                <html>
                <body>
                    <h2>Hi {escape(applicant_name)},</h2>
                    <p>{headline}</p>
                    {notes_html}
                </body>
                </html>
            """,
            'html': True
        }
