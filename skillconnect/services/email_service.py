"""
Email Service

SMTP notification sink for SkillConnect. Uses aiosmtplib for async delivery
and Jinja2 for the optional HTML templates (welcome, verification,
notification).
"""

import os
import logging
import re
from typing import Optional, Dict, Any, List, Tuple
import aiosmtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from email.utils import make_msgid
from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape
from pathlib import Path

from skillconnect.services.notification_sink import DeliveryResult

logger = logging.getLogger(__name__)

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates" / "email"


class EmailServiceConfig:
    """Configuration for email service from environment variables."""

    def __init__(self):
        self.smtp_host = os.getenv('SMTP_HOST', 'localhost')
        self.smtp_port = int(os.getenv('SMTP_PORT', '587'))
        self.smtp_username = os.getenv('SMTP_USERNAME', '')
        self.smtp_password = os.getenv('SMTP_PASSWORD', '')
        self.smtp_use_tls = os.getenv('SMTP_USE_TLS', 'false').lower() == 'true'
        self.smtp_start_tls = os.getenv('SMTP_START_TLS', 'true').lower() == 'true'
        self.from_email = os.getenv('FROM_EMAIL', 'noreply@skillconnect.com')
        self.from_name = os.getenv('FROM_NAME', 'SkillConnect')
        self.reply_to_email = os.getenv('REPLY_TO_EMAIL', '')
        self.template_dir = os.getenv('EMAIL_TEMPLATE_DIR', str(_DEFAULT_TEMPLATE_DIR))

    def is_configured(self) -> bool:
        """Check if email service is properly configured."""
        return bool(self.smtp_host and self.smtp_port > 0 and self.from_email)

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors."""
        errors = []

        if not self.smtp_host:
            errors.append("SMTP_HOST is required")
        if not self.smtp_port or self.smtp_port <= 0:
            errors.append("SMTP_PORT must be a positive integer")
        if not self.from_email:
            errors.append("FROM_EMAIL is required")
        if self.smtp_use_tls and self.smtp_start_tls:
            errors.append("Cannot use both implicit TLS and STARTTLS simultaneously")

        return errors


class EmailService:
    """Notification sink that delivers via SMTP."""

    def __init__(self, config: Optional[EmailServiceConfig] = None):
        self.config = config or EmailServiceConfig()
        self.template_env = None
        self._setup_templates()

    def _setup_templates(self):
        """Setup Jinja2 template environment."""
        template_path = Path(self.config.template_dir)
        if not template_path.exists():
            logger.warning(f"Email template directory not found: {template_path}")
            return
        self.template_env = Environment(
            loader=FileSystemLoader(str(template_path)),
            autoescape=select_autoescape(["html"]),
        )

    async def send(
        self,
        recipient: str,
        subject: str,
        body: str,
        template: Optional[str] = None,
    ) -> DeliveryResult:
        """Send one message; the body is wrapped in ``template`` when it exists."""
        html_content, text_content = self.render_message(subject, body, template)
        result = await self.send_email(
            to_email=recipient,
            subject=subject,
            html_content=html_content,
            text_content=text_content,
        )
        return DeliveryResult(
            success=bool(result.get('success')),
            message_id=result.get('message_id'),
            error=result.get('error'),
        )

    def render_message(self, subject: str, body: str, template: Optional[str]) -> Tuple[str, str]:
        if template and self.template_env is not None:
            try:
                return self.render_template(template, {"subject": subject, "content": body})
            except TemplateNotFound:
                logger.warning("Unknown email template %r, sending plain message", template)
        escaped = (
            body.replace('&', '&amp;').replace('<', '&lt;').replace('>', '&gt;')
        )
        return f"<p>{escaped}</p>", body

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
        reply_to: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Send an email via SMTP.

        Returns:
            Dict with 'success', 'message_id', and 'error' keys
        """
        if not self.config.is_configured():
            return {
                'success': False,
                'error': 'Email service not configured'
            }

        try:
            message = MIMEMultipart('alternative')
            message['From'] = f"{self.config.from_name} <{self.config.from_email}>"
            message['To'] = to_email
            message['Subject'] = subject
            message['Message-ID'] = make_msgid(domain=self.config.from_email.split('@')[-1])

            if reply_to or self.config.reply_to_email:
                message['Reply-To'] = reply_to or self.config.reply_to_email

            if text_content:
                message.attach(MIMEText(text_content, 'plain', 'utf-8'))
            message.attach(MIMEText(html_content, 'html', 'utf-8'))

            result = await self._send_via_smtp(message)

            logger.info(f"Email sent successfully to {to_email}: {subject}")
            return result

        except Exception as e:
            error_msg = f"Failed to send email to {to_email}: {str(e)}"
            logger.error(error_msg, exc_info=True)
            return {
                'success': False,
                'error': error_msg
            }

    async def _send_via_smtp(self, message: MIMEMultipart) -> Dict[str, Any]:
        """Send email via SMTP with proper connection handling."""
        smtp_kwargs = {
            'hostname': self.config.smtp_host,
            'port': self.config.smtp_port,
            'use_tls': self.config.smtp_use_tls,
            'start_tls': self.config.smtp_start_tls,
        }

        async with aiosmtplib.SMTP(**smtp_kwargs) as smtp:
            if self.config.smtp_username and self.config.smtp_password:
                await smtp.login(self.config.smtp_username, self.config.smtp_password)

            result = await smtp.send_message(message)

            return {
                'success': True,
                'message_id': message.get('Message-ID', ''),
                'smtp_result': result
            }

    def render_template(self, template_name: str, context: Dict[str, Any]) -> Tuple[str, str]:
        """
        Render email template with context.

        Returns:
            Tuple of (html_content, text_content)
        """
        if not self.template_env:
            raise RuntimeError("Template environment not configured")

        html_template = self.template_env.get_template(f"{template_name}.html")
        html_content = html_template.render(**context)

        try:
            text_template = self.template_env.get_template(f"{template_name}.txt")
            text_content = text_template.render(**context)
        except TemplateNotFound:
            text_content = self._html_to_text(html_content)

        return html_content, text_content

    def _html_to_text(self, html_content: str) -> str:
        """Convert HTML to basic text content."""
        text = re.sub(r'<[^>]+>', '', html_content)
        text = text.replace('&amp;', '&').replace('&lt;', '<').replace('&gt;', '>')
        text = text.replace('&quot;', '"').replace('&#39;', "'")
        text = re.sub(r'\s+', ' ', text).strip()
        return text
