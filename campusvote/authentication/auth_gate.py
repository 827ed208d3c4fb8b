# campusvote/authentication/auth_gate.py

import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from campusvote import db
from campusvote.authentication.rbac import UserRole
from campusvote.database.models import Admin, LoginLog, Student
from campusvote.encryption.password_hashing import PasswordHashingService
from campusvote.errors import AuthenticationError, ConflictError, ValidationError
from campusvote.security.input_validator import InputValidator
from campusvote.security.token_manager import TokenManager

logger = logging.getLogger(__name__)

REGISTRATION_FIELDS = ['fullName', 'email', 'studentId', 'department', 'year', 'password']
ALREADY_REGISTERED = 'Student already registered with this email or student ID'


class AuthGate:
    def __init__(self, password_service=None, token_manager=None, validator=None):
        self.password_service = password_service or PasswordHashingService()
        self.token_manager = token_manager or TokenManager()
        self.validator = validator or InputValidator()

    def ensure_default_admin(self, email, password):
        """Create the bootstrap admin if it does not exist yet. Returns True if created."""
        email = self.validator.normalize_email(email)
        if db.session.query(Admin).filter_by(email=email).first():
            return False
        admin = Admin(
            email=email,
            password_hash=self.password_service.hash_password(password),
            role=UserRole.ADMIN.value,
        )
        db.session.add(admin)
        try:
            db.session.commit()
        except IntegrityError:
            # Another worker created it first.
            db.session.rollback()
            return False
        logger.info("Default admin account created: %s", email)
        return True

    def _upgrade_hash(self, account, password):
        # Hashes made with older Argon2 parameters are replaced on the next good login.
        if (self.password_service.needs_rehash(account.password_hash)
                and self.password_service.is_acceptable_password(password)):
            account.password_hash = self.password_service.hash_password(password)
            logger.info("Password hash upgraded for %s", account.email)

    def _record_login(self, email, student_id, user_type, ip_address, user_agent):
        db.session.add(LoginLog(
            email=email,
            student_id=student_id,
            user_type=user_type,
            ip_address=ip_address,
            user_agent=(user_agent or '')[:512],
        ))
        db.session.commit()

    def admin_login(self, email, password, ip_address=None, user_agent=None):
        if not email:
            raise AuthenticationError('Invalid credentials')
        email = self.validator.normalize_email(email)
        admin = db.session.query(Admin).filter_by(email=email).first()
        if admin is None or not self.password_service.verify_password(password, admin.password_hash):
            raise AuthenticationError('Invalid credentials')

        self._upgrade_hash(admin, password)
        self._record_login(admin.email, None, UserRole.ADMIN.value, ip_address, user_agent)
        token = self.token_manager.issue_token(admin.id, {
            'email': admin.email,
            'role': UserRole.ADMIN.value,
        })
        return token, admin

    def register_student(self, data):
        self.validator.require_fields(data, REGISTRATION_FIELDS, message='All fields are required')

        email = self.validator.normalize_email(data['email'])
        student_id = data['studentId'].strip() if isinstance(data['studentId'], str) else str(data['studentId'])
        if not self.validator.validate_email(email):
            raise ValidationError('Invalid email address')
        if not self.validator.validate_student_id(student_id):
            raise ValidationError('Invalid student ID')

        existing = (db.session.query(Student)
                    .filter(or_(Student.email == email, Student.student_id == student_id))
                    .first())
        if existing:
            raise ConflictError(ALREADY_REGISTERED)

        student = Student(
            full_name=self.validator.sanitize_string(data['fullName'], max_length=150),
            email=email,
            student_id=student_id,
            department=self.validator.sanitize_string(data['department'], max_length=100),
            year=self.validator.sanitize_string(str(data['year']), max_length=20),
            password_hash=self.password_service.hash_password(data['password']),
        )
        db.session.add(student)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError(ALREADY_REGISTERED)
        logger.info("Student %s registered", student.student_id)
        return student

    def student_login(self, email, student_id, password, ip_address=None, user_agent=None):
        if not email or not student_id or not password:
            raise ValidationError('Email, student ID, and password are required')

        student = (db.session.query(Student)
                   .filter_by(email=self.validator.normalize_email(email), student_id=str(student_id).strip())
                   .first())
        if student is None:
            raise AuthenticationError(
                "Invalid credentials. Please register first if you haven't already."
            )
        if not self.password_service.verify_password(password, student.password_hash):
            raise AuthenticationError('Invalid credentials')

        self._upgrade_hash(student, password)
        self._record_login(student.email, student.student_id, UserRole.STUDENT.value,
                           ip_address, user_agent)
        token = self.token_manager.issue_token(student.id, {
            'email': student.email,
            'studentId': student.student_id,
            'role': UserRole.STUDENT.value,
        })
        return token, student

    def list_login_logs(self, limit=100):
        return (db.session.query(LoginLog)
                .order_by(LoginLog.login_time.desc(), LoginLog.id.desc())
                .limit(limit)
                .all())

    def list_students(self):
        return (db.session.query(Student)
                .order_by(Student.created_at.desc(), Student.id.desc())
                .all())
