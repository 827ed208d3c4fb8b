# campusvote/notifications/mailer.py

import logging
import smtplib

from flask import current_app
from flask_mail import Message

from campusvote import mail

logger = logging.getLogger(__name__)

OTP_EMAIL_TEMPLATE = """
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #1e3a8a;">Password Reset Request</h2>
  <p>You have requested to reset your password for the Online Voting System.</p>
  <div style="background-color: #f3f4f6; padding: 20px; border-radius: 8px; text-align: center; margin: 20px 0;">
    <h3 style="color: #1e3a8a; margin: 0;">Your OTP Code</h3>
    <h1 style="color: #d4af37; font-size: 32px; letter-spacing: 4px; margin: 10px 0;">{code}</h1>
  </div>
  <p><strong>Important:</strong></p>
  <ul>
    <li>This OTP is valid for {ttl} minutes only</li>
    <li>Do not share this OTP with anyone</li>
    <li>If you didn't request this, please ignore this email</li>
  </ul>
  <p>Best regards,<br>Online Voting System Team</p>
</div>
"""


class Mailer:
    def send_mail(self, to, subject, body, html=None) -> bool:
        """Send one message. Returns False on delivery failure; callers decide how to surface it."""
        msg = Message(
            subject,
            recipients=[to],
            body=body,
            html=html,
            sender=current_app.config.get('MAIL_DEFAULT_SENDER'),
        )
        try:
            mail.send(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Error sending email to %s: %s", to, e)
            return False
        logger.info("Email sent to %s", to)
        return True

    def send_otp(self, to, code, ttl_minutes) -> bool:
        body = (
            f"Your password reset OTP is {code}. "
            f"It is valid for {ttl_minutes} minutes. Do not share it with anyone."
        )
        return self.send_mail(
            to,
            'Password Reset OTP - Online Voting System',
            body,
            html=OTP_EMAIL_TEMPLATE.format(code=code, ttl=ttl_minutes),
        )
