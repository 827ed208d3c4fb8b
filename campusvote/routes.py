# campusvote/routes.py

# JSON API consumed by the campus voting web client.
# Routes stay thin: they parse the request, check access, call a service and
# serialize. Services raise campusvote.errors exceptions which the app-level
# handler turns into {"message": ...} responses.

from flask import jsonify, request
from flask_jwt_extended import get_jwt
from campusvote import app, limiter
from campusvote.audit.audit_logger import AuditLogger
from campusvote.authentication.auth_gate import AuthGate
from campusvote.authentication.password_reset import PasswordResetService
from campusvote.authentication.rbac import Permission, ensure_student_scope, require_permission
from campusvote.elections.candidates import CandidateRegistry
from campusvote.elections.lifecycle import ElectionLifecycleService
from campusvote.errors import AuthenticationError, ValidationError
from campusvote.operations.health_monitor import check_health, check_readiness
from campusvote.security.input_validator import InputValidator
from campusvote.security.intrusion_detection import IntrusionDetection
from campusvote.voting.results import ResultsAggregator
from campusvote.voting.vote_ledger import VoteLedger

auth_gate = AuthGate()
password_reset = PasswordResetService(ttl_minutes=app.config['OTP_TTL_MINUTES'])
elections = ElectionLifecycleService()
candidates = CandidateRegistry()
vote_ledger = VoteLedger()
results_aggregator = ResultsAggregator()
validator = InputValidator()
intrusion_detection = IntrusionDetection()
audit_logger = AuditLogger(log_dir=app.config['AUDIT_LOG_DIR'])


def _json_body():
    return request.get_json(silent=True) or {}


def _client_ip():
    return request.remote_addr or 'unknown'


def _check_lockout():
    ip = _client_ip()
    if intrusion_detection.is_blocked(ip):
        audit_logger.log_event('login_blocked', {'ip': ip})
        return jsonify({'message': 'Too many failed login attempts. Please try again later.'}), 429
    if intrusion_detection.is_throttled(ip):
        return jsonify({'message': 'Please wait a moment before trying to log in again.'}), 429
    return None


def _election_patch(data):
    # The web client sends startDate/endDate; startTime/endTime are accepted too.
    return {
        'title': data.get('title'),
        'description': data.get('description'),
        'start_time': data.get('startDate', data.get('startTime')),
        'end_time': data.get('endDate', data.get('endTime')),
    }


@app.route('/')
def index():
    return jsonify({
        'message': 'Online Voting System API Server',
        'status': 'Running',
        'version': '1.0.0',
        'endpoints': {
            'admin': {
                'login': 'POST /api/admin/login',
                'loginLogs': 'GET /api/admin/login-logs',
                'students': 'GET /api/admin/students',
                'auditLog': 'GET /api/admin/audit-log',
                'createElection': 'POST /api/admin/elections',
                'updateElection': 'PUT /api/admin/elections/:id',
                'updateElectionStatus': 'PUT /api/admin/elections/:id/status',
                'deleteElection': 'DELETE /api/admin/elections/:id',
                'createCandidate': 'POST /api/admin/candidates',
                'deleteCandidate': 'DELETE /api/admin/candidates/:id',
            },
            'student': {
                'register': 'POST /api/student/register',
                'login': 'POST /api/student/login',
                'forgotPassword': 'POST /api/student/forgot-password',
                'verifyOTP': 'POST /api/student/verify-otp',
                'resetPassword': 'POST /api/student/reset-password',
            },
            'elections': {
                'getAll': 'GET /api/elections',
                'getById': 'GET /api/elections/:id',
                'getResults': 'GET /api/elections/:electionId/results',
            },
            'candidates': {
                'getAll': 'GET /api/candidates',
                'getByElection': 'GET /api/candidates/election/:electionId',
            },
            'votes': {
                'submit': 'POST /api/vote',
                'getStatus': 'GET /api/vote/status/:electionId/:studentId',
                'delete': 'DELETE /api/vote/:voteId',
                'byStudent': 'GET /api/votes/student/:studentId',
            },
            'test': 'GET /api/test',
        },
    })


@app.route('/api/test')
def api_test():
    return jsonify({'message': 'API is working!'})


@app.route('/health')
def health():
    res = check_health()
    return jsonify(res), 200 if res['overall_ok'] else 503


@app.route('/ready')
def ready():
    res = check_readiness()
    return jsonify(res), 200 if res['overall_ok'] else 503


# ---------------------------------------------------------------- auth ---

@app.route('/api/admin/login', methods=['POST'])
@limiter.limit("20/minute")
def admin_login():
    blocked = _check_lockout()
    if blocked:
        return blocked
    data = _json_body()
    try:
        token, admin = auth_gate.admin_login(
            data.get('email'), data.get('password'),
            ip_address=_client_ip(), user_agent=request.headers.get('User-Agent'),
        )
    except (AuthenticationError, ValidationError):
        intrusion_detection.record_failed_attempt(_client_ip())
        audit_logger.log_event('failed_login', {'email': data.get('email'), 'ip': _client_ip(), 'type': 'admin'})
        raise
    intrusion_detection.clear_attempts(_client_ip())
    audit_logger.log_event('successful_login', {'type': 'admin'}, actor=admin.email)
    return jsonify({'message': 'Login successful', 'token': token, 'user': admin.to_dict()})


@app.route('/api/student/register', methods=['POST'])
@limiter.limit("10/minute")
def student_register():
    student = auth_gate.register_student(_json_body())
    return jsonify({'message': 'Registration successful', 'student': student.to_dict()}), 201


@app.route('/api/student/login', methods=['POST'])
@limiter.limit("20/minute")
def student_login():
    blocked = _check_lockout()
    if blocked:
        return blocked
    data = _json_body()
    try:
        token, student = auth_gate.student_login(
            data.get('email'), data.get('studentId'), data.get('password'),
            ip_address=_client_ip(), user_agent=request.headers.get('User-Agent'),
        )
    except (AuthenticationError, ValidationError):
        intrusion_detection.record_failed_attempt(_client_ip())
        audit_logger.log_event('failed_login', {'email': data.get('email'), 'ip': _client_ip(), 'type': 'student'})
        raise
    intrusion_detection.clear_attempts(_client_ip())
    audit_logger.log_event('successful_login', {'type': 'student'}, actor=student.student_id)
    return jsonify({'message': 'Login successful', 'token': token, 'user': student.to_dict()})


@app.route('/api/student/forgot-password', methods=['POST'])
@limiter.limit("5/minute")
def forgot_password():
    masked = password_reset.request_reset(_json_body().get('email'))
    return jsonify({'message': 'OTP sent successfully to your email address', 'email': masked})


@app.route('/api/student/verify-otp', methods=['POST'])
@limiter.limit("10/minute")
def verify_otp():
    data = _json_body()
    password_reset.verify_otp(data.get('email'), data.get('otp'))
    return jsonify({'message': 'OTP verified successfully', 'verified': True})


@app.route('/api/student/reset-password', methods=['POST'])
@limiter.limit("10/minute")
def reset_password():
    data = _json_body()
    student = password_reset.reset_password(data.get('email'), data.get('otp'), data.get('newPassword'))
    audit_logger.log_event('password_reset', {'studentId': student.student_id}, actor=student.student_id)
    return jsonify({'message': 'Password reset successfully', 'success': True})


# --------------------------------------------------------- admin views ---

@app.route('/api/admin/login-logs')
@require_permission(Permission.VIEW_LOGIN_LOGS)
def login_logs():
    return jsonify([log.to_dict() for log in auth_gate.list_login_logs(limit=100)])


@app.route('/api/admin/students')
@require_permission(Permission.VIEW_STUDENTS)
def registered_students():
    return jsonify([s.to_dict() for s in auth_gate.list_students()])


@app.route('/api/admin/audit-log')
@require_permission(Permission.VIEW_AUDIT_LOG)
def view_audit_log():
    return jsonify({
        'intact': audit_logger.verify_log_integrity(),
        'entries': audit_logger.read_entries(newest_first=True),
    })


# ----------------------------------------------------------- elections ---

@app.route('/api/admin/elections', methods=['POST'])
@require_permission(Permission.MANAGE_ELECTIONS)
def create_election():
    data = _json_body()
    patch = _election_patch(data)
    election = elections.create_election(
        patch['title'], patch['description'], patch['start_time'], patch['end_time'],
        data.get('createdBy') or get_jwt().get('email'),
    )
    return jsonify({'message': 'Election created successfully', 'election': election.to_dict()}), 201


@app.route('/api/elections')
def list_elections():
    return jsonify([e.to_dict() for e in elections.list_elections()])


@app.route('/api/elections/<int:election_id>')
def get_election(election_id):
    return jsonify(elections.get_election(election_id).to_dict())


@app.route('/api/admin/elections/<int:election_id>', methods=['PUT'])
@require_permission(Permission.MANAGE_ELECTIONS)
def update_election(election_id):
    election = elections.update_election(election_id, _election_patch(_json_body()))
    return jsonify({'message': 'Election updated successfully', 'election': election.to_dict()})


@app.route('/api/admin/elections/<int:election_id>/status', methods=['PUT'])
@require_permission(Permission.MANAGE_ELECTIONS)
def update_election_status(election_id):
    election = elections.update_election_status_field(election_id, _json_body().get('status'))
    return jsonify({'message': 'Election status updated', 'election': election.to_dict()})


@app.route('/api/admin/elections/<int:election_id>', methods=['DELETE'])
@require_permission(Permission.MANAGE_ELECTIONS)
def delete_election(election_id):
    elections.delete_election(election_id)
    audit_logger.log_event('election_deleted', {'electionId': election_id}, actor=get_jwt().get('email'))
    return jsonify({'message': 'Election deleted successfully'})


@app.route('/api/elections/<int:election_id>/results')
def election_results(election_id):
    return jsonify(results_aggregator.compute_results(election_id))


# ---------------------------------------------------------- candidates ---

@app.route('/api/admin/candidates', methods=['POST'])
@require_permission(Permission.MANAGE_CANDIDATES)
def create_candidate():
    data = _json_body()
    candidate = candidates.create_candidate(
        data.get('name'), data.get('position'), data.get('electionId'),
        data.get('department'), data.get('photoUrl'),
    )
    return jsonify({'message': 'Candidate created successfully', 'candidate': candidate.to_dict()}), 201


@app.route('/api/candidates')
def list_candidates():
    return jsonify([c.to_dict() for c in candidates.list_candidates()])


@app.route('/api/candidates/election/<int:election_id>')
def list_candidates_for_election(election_id):
    return jsonify([c.to_dict() for c in candidates.list_candidates(election_id=election_id)])


@app.route('/api/admin/candidates/<int:candidate_id>', methods=['DELETE'])
@require_permission(Permission.MANAGE_CANDIDATES)
def delete_candidate(candidate_id):
    candidates.delete_candidate(candidate_id)
    return jsonify({'message': 'Candidate deleted successfully'})


# --------------------------------------------------------------- votes ---

@app.route('/api/vote', methods=['POST'])
@require_permission(Permission.VOTE)
def submit_vote():
    data = _json_body()
    if not validator.missing_fields(data, ['studentId']):
        ensure_student_scope(data['studentId'])
    vote_id = vote_ledger.submit_vote(data.get('electionId'), data.get('candidateId'), data.get('studentId'))
    audit_logger.log_event('vote_cast', {'voteId': vote_id, 'electionId': data.get('electionId')},
                           actor=str(data.get('studentId')))
    return jsonify({'message': 'Vote submitted successfully', 'voteId': vote_id})


@app.route('/api/vote/status/<int:election_id>/<student_id>')
@require_permission(Permission.VIEW_VOTE_STATUS)
def vote_status(election_id, student_id):
    ensure_student_scope(student_id)
    return jsonify(vote_ledger.get_vote_status(election_id, student_id))


@app.route('/api/vote/<int:vote_id>', methods=['DELETE'])
@require_permission(Permission.REVERSE_VOTE)
def delete_vote(vote_id):
    vote = vote_ledger.get_vote(vote_id)
    ensure_student_scope(vote.student_id)
    reversed_vote = vote_ledger.reverse_vote(vote_id)
    audit_logger.log_event('vote_reversed', reversed_vote, actor=get_jwt().get('studentId') or get_jwt().get('email'))
    return jsonify({'message': 'Vote deleted successfully'})


@app.route('/api/votes/student/<student_id>')
@require_permission(Permission.VIEW_VOTE_STATUS)
def student_votes(student_id):
    ensure_student_scope(student_id)
    return jsonify([v.to_dict() for v in vote_ledger.list_votes_for_student(student_id)])
