# campusvote/security/input_validator.py

import html
import re
import bleach

from campusvote.errors import ValidationError

# Input validation and sanitization for request payloads (XSS-safe text fields)


class InputValidator:
    def __init__(self):
        self.patterns = {
            'email': re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9-]+(\.[a-zA-Z0-9-]+)*\.[a-zA-Z]{2,}$'),
            'student_id': re.compile(r'^[A-Za-z0-9][A-Za-z0-9_/-]{0,31}$'),
            'otp': re.compile(r'^\d{6}$'),
        }

    def sanitize_string(self, input_str, max_length=255):
        if not isinstance(input_str, str):
            raise ValidationError("Input must be a string")
        if len(input_str) > max_length:
            input_str = input_str[:max_length]

        # Strip every tag; store plain text, not HTML entities
        sanitized = html.unescape(bleach.clean(input_str, tags=[], attributes={}, strip=True))
        return sanitized.strip()

    def validate_email(self, email):
        return isinstance(email, str) and bool(self.patterns['email'].match(email))

    def normalize_email(self, email):
        """Lowercased, stripped address. Non-string JSON values are rejected."""
        if not isinstance(email, str):
            raise ValidationError("Invalid email address")
        return email.strip().lower()

    def validate_student_id(self, student_id):
        return isinstance(student_id, str) and bool(self.patterns['student_id'].match(student_id))

    def validate_otp(self, code):
        return isinstance(code, str) and bool(self.patterns['otp'].match(code))

    def missing_fields(self, data, fields):
        """Return the names of required fields that are absent or blank."""
        data = data or {}
        missing = []
        for field in fields:
            value = data.get(field)
            if value is None or (isinstance(value, str) and not value.strip()):
                missing.append(field)
        return missing

    def require_fields(self, data, fields, message=None):
        missing = self.missing_fields(data, fields)
        if missing:
            raise ValidationError(message or f"Missing required fields: {', '.join(missing)}")
        return data

    def coerce_id(self, value, field_name):
        """Record ids are integers; accept them as ints or numeric strings."""
        if isinstance(value, bool):
            raise ValidationError(f"Invalid {field_name}")
        if isinstance(value, int):
            return value
        if isinstance(value, str) and value.strip().isdigit():
            return int(value.strip())
        raise ValidationError(f"Invalid {field_name}")
