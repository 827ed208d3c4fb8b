# campusvote/authentication/password_reset.py

import logging
import secrets
from datetime import timedelta

from campusvote import db
from campusvote.database.models import OTP, Student
from campusvote.encryption.password_hashing import MIN_PASSWORD_LENGTH, PasswordHashingService
from campusvote.errors import NotFoundError, UpstreamError, ValidationError
from campusvote.notifications.mailer import Mailer
from campusvote.operations.time_sync import utcnow
from campusvote.security.input_validator import InputValidator

logger = logging.getLogger(__name__)

OTP_PURPOSE = 'forgot-password'
INVALID_OTP = 'Invalid or expired OTP'


def generate_otp() -> str:
    return str(100000 + secrets.randbelow(900000))


def mask_email(email: str) -> str:
    """Keep the first and last two characters: 'jane@x.io' -> 'ja*****io'."""
    if len(email) <= 4:
        return email
    return email[:2] + '*' * (len(email) - 4) + email[-2:]


class PasswordResetService:
    """
    Forgot-password flow for students: issue an emailed 6-digit OTP, verify
    it, then reset the password with it. Only the newest OTP for an email is
    ever valid, and expired codes are treated as absent.
    """

    def __init__(self, mailer=None, password_service=None, ttl_minutes=10):
        self.mailer = mailer or Mailer()
        self.password_service = password_service or PasswordHashingService()
        self.ttl = timedelta(minutes=ttl_minutes)
        self.validator = InputValidator()

    def _find_valid_otp(self, email, code, now=None):
        code = str(code).strip()
        if not self.validator.validate_otp(code):
            return None
        now = now or utcnow()
        return (db.session.query(OTP)
                .filter(OTP.email == email,
                        OTP.code == code,
                        OTP.purpose == OTP_PURPOSE,
                        OTP.expires_at > now)
                .first())

    def request_reset(self, email):
        if not email:
            raise ValidationError('Email is required')
        email = self.validator.normalize_email(email)
        if not email:
            raise ValidationError('Email is required')

        if db.session.query(Student).filter_by(email=email).first() is None:
            raise NotFoundError('No account found with this email address')

        now = utcnow()
        code = generate_otp()
        db.session.query(OTP).filter(
            (OTP.email == email) | (OTP.expires_at <= now)
        ).delete(synchronize_session=False)
        db.session.add(OTP(
            email=email,
            code=code,
            purpose=OTP_PURPOSE,
            created_at=now,
            expires_at=now + self.ttl,
        ))
        db.session.commit()

        ttl_minutes = int(self.ttl.total_seconds() // 60)
        if not self.mailer.send_otp(email, code, ttl_minutes):
            raise UpstreamError('Failed to send OTP email. Please try again.')
        logger.info("Password reset OTP issued for %s", mask_email(email))
        return mask_email(email)

    def verify_otp(self, email, code):
        if not email or not code:
            raise ValidationError('Email and OTP are required')
        if self._find_valid_otp(self.validator.normalize_email(email), code) is None:
            raise ValidationError(INVALID_OTP)
        return True

    def reset_password(self, email, code, new_password):
        if not email or not code or not new_password:
            raise ValidationError('Email, OTP, and new password are required')
        if not isinstance(new_password, str) or len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters long')
        email = self.validator.normalize_email(email)

        otp = self._find_valid_otp(email, code)
        if otp is None:
            raise ValidationError(INVALID_OTP)

        student = db.session.query(Student).filter_by(email=email).first()
        if student is None:
            raise NotFoundError('Student not found')

        student.password_hash = self.password_service.hash_password(new_password)
        db.session.delete(otp)
        db.session.commit()
        logger.info("Password reset completed for %s", mask_email(email))
        return student
