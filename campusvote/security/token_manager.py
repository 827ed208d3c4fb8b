# campusvote/security/token_manager.py

from datetime import timedelta
from flask_jwt_extended import create_access_token

# Bearer session tokens for admins and students using Flask-JWT-Extended.
# Verification happens in the library's verify_jwt_in_request machinery.


class TokenManager:
    def issue_token(self, identity, claims: dict = None, expires_in: int = None) -> str:
        # Identity must be a string for the 'sub' claim.
        expires_delta = timedelta(seconds=expires_in) if expires_in else None
        return create_access_token(
            identity=str(identity),
            additional_claims=claims or {},
            expires_delta=expires_delta,
        )
