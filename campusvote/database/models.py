# campusvote/database/models.py

from campusvote import db
from campusvote.elections.status import ElectionStatus, get_status
from campusvote.operations.time_sync import isoformat, utcnow


class Admin(db.Model):
    __tablename__ = 'admins'
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(254), unique=True, nullable=False)
    password_hash = db.Column(db.String(200), nullable=False)  # Argon2id
    role = db.Column(db.String(20), nullable=False, default='admin')

    def to_dict(self):
        return {'id': self.id, 'email': self.email, 'role': self.role}


class Student(db.Model):
    __tablename__ = 'students'
    id = db.Column(db.Integer, primary_key=True)
    full_name = db.Column(db.String(150), nullable=False)
    email = db.Column(db.String(254), unique=True, nullable=False)
    student_id = db.Column(db.String(32), unique=True, nullable=False)
    department = db.Column(db.String(100), nullable=False)
    year = db.Column(db.String(20), nullable=False)
    password_hash = db.Column(db.String(200), nullable=False)
    is_registered = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        # password_hash is never serialized
        return {
            'id': self.id,
            'fullName': self.full_name,
            'email': self.email,
            'studentId': self.student_id,
            'department': self.department,
            'year': self.year,
            'isRegistered': self.is_registered,
            'createdAt': isoformat(self.created_at),
        }


class LoginLog(db.Model):
    __tablename__ = 'login_logs'
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(254), nullable=False)
    student_id = db.Column(db.String(32), nullable=True)
    user_type = db.Column(db.String(10), nullable=False)  # admin | student
    login_time = db.Column(db.DateTime, default=utcnow, index=True)
    ip_address = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'studentId': self.student_id,
            'userType': self.user_type,
            'loginTime': isoformat(self.login_time),
            'ipAddress': self.ip_address,
            'userAgent': self.user_agent,
        }


class Election(db.Model):
    __tablename__ = 'elections'
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False)
    start_time = db.Column(db.DateTime, nullable=False)
    end_time = db.Column(db.DateTime, nullable=False)
    # Advisory only; the live status is always derived from the window.
    status = db.Column(db.String(10), nullable=False, default=ElectionStatus.UPCOMING.value)
    created_by = db.Column(db.String(254), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    candidates = db.relationship('Candidate', backref='election', lazy=True,
                                 cascade='all, delete-orphan')

    def live_status(self, now=None):
        return get_status(self, now or utcnow())

    def to_dict(self, now=None):
        return {
            'id': self.id,
            '_id': self.id,  # the web client keys records by _id
            'title': self.title,
            'description': self.description,
            'startDate': isoformat(self.start_time),
            'endDate': isoformat(self.end_time),
            'status': self.live_status(now).value,
            'storedStatus': self.status,
            'createdBy': self.created_by,
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }


class Candidate(db.Model):
    __tablename__ = 'candidates'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    position = db.Column(db.String(100), nullable=False)
    election_id = db.Column(db.Integer, db.ForeignKey('elections.id'), nullable=False, index=True)
    department = db.Column(db.String(100), nullable=False)
    photo_url = db.Column(db.Text, nullable=True)
    vote_count = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            '_id': self.id,
            'name': self.name,
            'position': self.position,
            'electionId': self.election_id,
            'department': self.department,
            'photoUrl': self.photo_url or '',
            'votes': self.vote_count,
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }


class Vote(db.Model):
    __tablename__ = 'votes'
    __table_args__ = (
        db.UniqueConstraint('election_id', 'student_id', name='uq_vote_once_per_election'),
    )
    id = db.Column(db.Integer, primary_key=True)
    election_id = db.Column(db.Integer, db.ForeignKey('elections.id'), nullable=False, index=True)
    # No FK: deleting a candidate leaves its votes in place.
    candidate_id = db.Column(db.Integer, nullable=False, index=True)
    student_id = db.Column(db.String(32), nullable=False, index=True)
    cast_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            '_id': self.id,
            'electionId': self.election_id,
            'candidateId': self.candidate_id,
            'studentId': self.student_id,
            'votedAt': isoformat(self.cast_at),
        }

    def __repr__(self):
        return f'<Vote {self.id} by Student {self.student_id} in Election {self.election_id}>'


class OTP(db.Model):
    __tablename__ = 'otps'
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(254), nullable=False, index=True)
    code = db.Column(db.String(6), nullable=False)
    purpose = db.Column(db.String(20), nullable=False, default='forgot-password')
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    expires_at = db.Column(db.DateTime, nullable=False, index=True)
