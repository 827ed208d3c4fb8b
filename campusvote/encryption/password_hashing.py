# campusvote/encryption/password_hashing.py

from argon2 import PasswordHasher
from argon2.exceptions import HashingError, InvalidHashError, VerificationError

from campusvote.errors import UpstreamError, ValidationError

# Password hashing and verification using Argon2id

MIN_PASSWORD_LENGTH = 6


class PasswordHashingService:
    def __init__(self, time_cost=3, memory_cost=65536, parallelism=4):
        self.ph = PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            hash_len=32,
            salt_len=16,
        )

    def hash_password(self, password: str) -> str:
        if not self.is_acceptable_password(password):
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
            )
        try:
            return self.ph.hash(password)
        except HashingError as e:
            raise UpstreamError(f"Password hashing failed: {str(e)}")

    def verify_password(self, password: str, hash_value: str) -> bool:
        if not isinstance(password, str) or not password or not hash_value:
            return False
        try:
            return self.ph.verify(hash_value, password)
        except (VerificationError, InvalidHashError):
            return False

    def needs_rehash(self, hash_value: str) -> bool:
        return self.ph.check_needs_rehash(hash_value)

    def is_acceptable_password(self, password) -> bool:
        return isinstance(password, str) and len(password) >= MIN_PASSWORD_LENGTH
