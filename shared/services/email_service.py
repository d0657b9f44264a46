"""
Email Service - Outbound transactional email over SMTP.
"""
from datetime import datetime, timezone
from email.message import EmailMessage
from typing import Optional
import smtplib

from shared.services.logger import get_logger
from config.settings import settings


logger = get_logger(__name__)

OTP_SUBJECT = "HD Notes - Email Verification Code"


class EmailService:
    """
    Sends HTML email through an SMTP relay (Gmail by default).

    ``send_email`` never raises: delivery problems are logged and reported
    as ``False`` so callers can decide whether the failure is fatal.
    """

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        sender: Optional[str] = None,
        use_tls: Optional[bool] = None,
        timeout: float = 10.0,
    ):
        self.host = host if host is not None else settings.SMTP_HOST
        self.port = port if port is not None else settings.SMTP_PORT
        self.username = username if username is not None else settings.EMAIL_USER
        self.password = password if password is not None else settings.EMAIL_PASS
        self.sender = sender if sender is not None else settings.EMAIL_FROM
        self.use_tls = use_tls if use_tls is not None else settings.SMTP_USE_TLS
        self.timeout = timeout

    def _build_message(self, to: str, subject: str, html: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content("This message requires an HTML capable email client.")
        message.add_alternative(html, subtype="html")
        return message

    def send_email(self, to: str, subject: str, html: str) -> bool:
        """Send an HTML email. Returns True when the relay accepted it."""
        message = self._build_message(to, subject, html)

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.username:
                    smtp.login(self.username, self.password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Email sending failed to {to}: {e}")
            return False

        logger.info(f"Email sent to {to}: {subject}")
        return True

    def send_otp_email(self, email: str, otp: str, user_name: str) -> bool:
        """Send the verification code email."""
        html = render_otp_email(otp, user_name, settings.OTP_EXPIRY_MINUTES)
        return self.send_email(email, OTP_SUBJECT, html)


def render_otp_email(otp: str, user_name: str, expiry_minutes: int = 10) -> str:
    """HTML body for the verification code email."""
    year = datetime.now(timezone.utc).year
    return f"""
    <!DOCTYPE html>
    <html lang="en">
    <head>
        <meta charset="UTF-8">
        <meta name="viewport" content="width=device-width, initial-scale=1.0">
        <title>HD Notes - Email Verification</title>
        <style>
            body {{ font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px; background-color: #f8fafc; }}
            .container {{ background: white; padding: 40px; border-radius: 12px; box-shadow: 0 4px 6px rgba(0, 0, 0, 0.1); }}
            .header {{ text-align: center; margin-bottom: 30px; }}
            .logo {{ font-size: 24px; font-weight: 600; color: #3b82f6; margin-bottom: 10px; }}
            .otp-code {{ background: linear-gradient(135deg, #3b82f6 0%, #1d4ed8 100%); color: white; font-size: 32px; font-weight: bold; letter-spacing: 8px; text-align: center; padding: 20px; border-radius: 8px; margin: 30px 0; font-family: 'Courier New', monospace; }}
            .warning {{ background-color: #fef3c7; border: 1px solid #fcd34d; border-radius: 8px; padding: 16px; margin: 20px 0; }}
            .warning-text {{ color: #92400e; font-size: 14px; margin: 0; }}
            .footer {{ margin-top: 30px; padding-top: 20px; border-top: 1px solid #e5e7eb; text-align: center; color: #6b7280; font-size: 14px; }}
            .expire-time {{ color: #dc2626; font-weight: 600; }}
        </style>
    </head>
    <body>
        <div class="container">
            <div class="header">
                <div class="logo">HD</div>
                <h1 style="color: #1f2937; margin: 0;">Email Verification</h1>
            </div>

            <p>Hi <strong>{user_name}</strong>,</p>

            <p>Thank you for signing up with HD Notes! Please use the following verification code to complete your registration:</p>

            <div class="otp-code">{otp}</div>

            <div class="warning">
                <p class="warning-text">
                    <strong>Important:</strong> This verification code will expire in <span class="expire-time">{expiry_minutes} minutes</span>.
                    If you didn't request this code, please ignore this email.
                </p>
            </div>

            <p>Enter this code in the HD Notes app to verify your email address and start creating your notes.</p>

            <p>Best regards,<br>The HD Notes Team</p>

            <div class="footer">
                <p>This is an automated message, please do not reply to this email.</p>
                <p>&copy; {year} HD Notes. All rights reserved.</p>
            </div>
        </div>
    </body>
    </html>
    """
