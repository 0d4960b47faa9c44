"""
LeadsFlow CRM - Service Email (SMTP)

SMTP settings come from the auth_configs document, edited by an admin.
- secure=True: implicit TLS (SMTP_SSL, usually port 465)
- secure=False: plain SMTP, upgraded with STARTTLS when offered (587)
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Dict

logger = logging.getLogger("email_service")

SMTP_TIMEOUT = 15


class EmailService:
    """Sends through the SMTP server described by an auth config document"""

    def __init__(self, auth_config: Dict):
        self.host = auth_config.get("emailSmtpServer") or ""
        self.port = int(auth_config.get("emailSmtpPort") or 587)
        self.username = auth_config.get("emailSmtpUsername") or ""
        self.password = auth_config.get("emailSmtpPassword") or ""
        self.secure = bool(auth_config.get("emailSmtpSecure", True))
        self.sender = auth_config.get("emailFromAddress") or ""

    def is_configured(self) -> bool:
        return bool(self.host and self.sender)

    def _connect(self) -> smtplib.SMTP:
        if self.secure:
            server = smtplib.SMTP_SSL(self.host, self.port, timeout=SMTP_TIMEOUT)
        else:
            server = smtplib.SMTP(self.host, self.port, timeout=SMTP_TIMEOUT)
            server.ehlo()
            if server.has_extn("starttls"):
                server.starttls()
                server.ehlo()
        if self.username:
            server.login(self.username, self.password)
        return server

    def test_connection(self) -> Dict:
        """Connect and authenticate, nothing is sent"""
        if not self.host:
            return {"success": False, "error": "SMTP server not configured"}
        try:
            server = self._connect()
            server.noop()
            server.quit()
        except smtplib.SMTPAuthenticationError as e:
            logger.error(f"[EMAIL] SMTP authentication failed for {self.host}: {e}")
            return {"success": False, "error": "SMTP authentication failed"}
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"[EMAIL] SMTP connection test failed for {self.host}: {e}")
            return {"success": False, "error": str(e) or "SMTP connection failed"}

        logger.info(f"[EMAIL] SMTP connection verified ({self.host}:{self.port})")
        return {"success": True}

    def send(self, to_email: str, subject: str, html_content: str) -> bool:
        if not self.is_configured():
            logger.error("[EMAIL] Email service not configured")
            return False

        msg = MIMEMultipart("alternative")
        msg["From"] = self.sender
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.attach(MIMEText(html_content, "html", "utf-8"))

        try:
            server = self._connect()
            try:
                server.send_message(msg)
            finally:
                server.quit()
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"[EMAIL] Send failed to {to_email}: {e}")
            return False

        logger.info(f"[EMAIL] Sent to {to_email}: {subject}")
        return True

    def send_verification_code(self, to_email: str, code: str, user_name: str) -> bool:
        html = f"""
        <h2>Hello {user_name},</h2>
        <p>Your LeadsFlow CRM login code is:</p>
        <div style="font-size: 24px; font-weight: bold; letter-spacing: 2px; margin: 20px 0;">
            {code}
        </div>
        <p>This code will expire in 10 minutes.</p>
        <p>If you didn't request this, please ignore this email.</p>
        """
        return self.send(to_email, "LeadsFlow CRM - Login Code", html)
