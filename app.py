# app.py

import json
import logging
import os
import io
import threading
import uuid
from datetime import datetime, date
from zoneinfo import ZoneInfo
from functools import wraps
from flask import Flask, jsonify, request, send_file, send_from_directory
from flask_cors import CORS
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from openpyxl import Workbook
from openpyxl.styles import Font
from werkzeug.exceptions import HTTPException
from werkzeug.security import generate_password_hash, check_password_hash
from werkzeug.utils import secure_filename

import roster_calendar
from roster_calendar import SelectionPolicyError

# --- App Initialization, Config, and Extensions ---
app = Flask(__name__)
CORS(app, supports_credentials=True)
logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s:%(message)s')
app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('DATABASE_URL', 'sqlite:///roster.db')
app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
app.config['UPLOAD_FOLDER'] = os.environ.get('UPLOAD_FOLDER', os.path.join(app.root_path, 'uploads'))
app.config['ENFORCE_DAY_COUNT'] = os.environ.get('ENFORCE_DAY_COUNT', '1') not in ('0', 'false', 'False', '')
app.config['CLIENT_TIMEZONE'] = os.environ.get('CLIENT_TIMEZONE', 'Asia/Kolkata')
app.config['MAX_CONTENT_LENGTH'] = int(os.environ.get('MAX_CONTENT_LENGTH', 5 * 1024 * 1024))
db = SQLAlchemy(app)
migrate = Migrate(app, db)

# --- Constants ---
ALLOWED_ATTACHMENT_EXTENSIONS = {'png', 'jpg', 'jpeg'}
DRAFT, PENDING, APPROVED, REJECTED = 'draft', 'pending', 'approved', 'rejected'
SUBMITTED_STATUSES = (PENDING, REJECTED)
ROLES = ('user', 'admin')
USER_REQUIRED_FIELDS = ('name', 'employeeId', 'designation', 'location')

# All mutating handlers share this lock so read-modify-write cycles cannot interleave.
_write_lock = threading.Lock()

# --- Decorators ---
def api_error_handler(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try: return f(*args, **kwargs)
        except HTTPException: raise
        except Exception as e:
            db.session.rollback()
            logging.error(f"An error occurred in endpoint '{f.__name__}': {e}", exc_info=True)
            return jsonify({"error": "An unexpected server error occurred."}), 500
    return decorated_function

def serialized_write(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        with _write_lock:
            try: return f(*args, **kwargs)
            # the next writer must not share this session's connection
            finally: db.session.remove()
    return decorated_function

@app.before_request
def log_request():
    logging.info(f"{request.method} {request.path}")

# --- Database Models ---
def _iso(value): return value.isoformat() if value else None

class User(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.String(32), unique=True, nullable=False)
    name = db.Column(db.String(120), nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    designation = db.Column(db.String(64), nullable=False)
    location = db.Column(db.String(120), nullable=False)
    role = db.Column(db.String(10), default='user', nullable=False)
    permissions = db.Column(db.JSON, default=lambda: [])
    def set_password(self, password): self.password_hash = generate_password_hash(password)
    def check_password(self, password): return check_password_hash(self.password_hash, password or '')
    def to_dict(self):
        return { "id": self.id, "employeeId": self.employee_id, "name": self.name, "designation": self.designation, "location": self.location, "role": self.role, "permissions": self.permissions or [] }
class DateSelection(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer)
    employee_id = db.Column(db.String(32), index=True, nullable=False)
    user_designation = db.Column(db.String(64))
    user_location = db.Column(db.String(120))
    selected_dates = db.Column(db.JSON, default=lambda: [])
    status = db.Column(db.String(10), default=DRAFT, nullable=False, index=True)
    month = db.Column(db.Integer, nullable=False)
    year = db.Column(db.Integer, nullable=False)
    saved_at = db.Column(db.DateTime, nullable=False)
    submitted_at = db.Column(db.DateTime)
    reviewed_at = db.Column(db.DateTime)
    reviewed_by = db.Column(db.String(32))
    admin_comment = db.Column(db.Text)
    attachment = db.Column(db.String(255))
    def to_dict(self):
        return { "id": self.id, "userId": self.user_id, "employeeId": self.employee_id, "userDesignation": self.user_designation, "userLocation": self.user_location, "selectedDates": self.selected_dates or [], "status": self.status, "month": self.month, "year": self.year, "savedAt": _iso(self.saved_at), "submittedAt": _iso(self.submitted_at), "reviewedAt": _iso(self.reviewed_at), "reviewedBy": self.reviewed_by, "adminComment": self.admin_comment, "attachment": self.attachment }
class SavedDates(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer)
    employee_id = db.Column(db.String(32), unique=True, nullable=False)
    user_designation = db.Column(db.String(64))
    user_location = db.Column(db.String(120))
    selected_dates = db.Column(db.JSON, default=lambda: [])
    month = db.Column(db.Integer, nullable=False)
    year = db.Column(db.Integer, nullable=False)
    saved_at = db.Column(db.DateTime, nullable=False)
    def to_dict(self):
        return { "id": self.id, "userId": self.user_id, "employeeId": self.employee_id, "userDesignation": self.user_designation, "userLocation": self.user_location, "selectedDates": self.selected_dates or [], "month": self.month, "year": self.year, "savedAt": _iso(self.saved_at) }

# --- Helper Functions ---
def _today(): return date.today()

def _client_tz(): return ZoneInfo(app.config['CLIENT_TIMEZONE'])

def _payload():
    """JSON body, or form fields for multipart posts (lists arrive JSON-encoded)."""
    if request.mimetype == 'multipart/form-data':
        data = request.form.to_dict()
        if 'selectedDates' in data:
            try: data['selectedDates'] = json.loads(data['selectedDates'] or '[]')
            except ValueError: data['selectedDates'] = None
        return data
    return request.get_json(silent=True) or {}

def _as_int(value):
    try: return int(value)
    except (TypeError, ValueError): return None

def _allowed_attachment(filename):
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_ATTACHMENT_EXTENSIONS

def _upload_folder(): return os.path.join(app.root_path, app.config['UPLOAD_FOLDER'])

def _store_attachment(file_storage):
    folder = _upload_folder()
    os.makedirs(folder, exist_ok=True)
    filename = f"{uuid.uuid4().hex}_{secure_filename(file_storage.filename)}"
    file_storage.save(os.path.join(folder, filename))
    return filename

def _remove_attachment(filename):
    if not filename or DateSelection.query.filter_by(attachment=filename).count(): return
    path = os.path.join(_upload_folder(), filename)
    if os.path.exists(path): os.remove(path)

def _collections():
    rows = DateSelection.query.order_by(DateSelection.id).all()
    return {
        "draftSelections": [r.to_dict() for r in rows if r.status == DRAFT],
        "submittedSelections": [r.to_dict() for r in rows if r.status in SUBMITTED_STATUSES],
        "approvedSelections": [r.to_dict() for r in rows if r.status == APPROVED],
    }

def _directory():
    users = User.query.order_by(User.id).all()
    return { "users": [u.to_dict() for u in users if u.role != 'admin'], "admins": [u.to_dict() for u in users if u.role == 'admin'] }

def _permissions(value):
    if isinstance(value, str): return [p.strip() for p in value.split(',') if p.strip()]
    if isinstance(value, (list, tuple)): return [str(p).strip() for p in value if str(p).strip()]
    return []

def _validate_user_fields(payload, require_password):
    fields = USER_REQUIRED_FIELDS + (('password',) if require_password else ())
    if not all(str(payload.get(k) or '').strip() for k in fields): return "Please fill in all required fields"
    if payload.get('designation') not in roster_calendar.DESIGNATIONS: return f"Unknown designation '{payload.get('designation')}'."
    if payload.get('role', 'user') not in ROLES: return "Role must be 'user' or 'admin'."
    return None

# --- Submission Lifecycle Endpoints ---
@app.route("/api/save-draft", methods=['POST'])
@api_error_handler
@serialized_write
def save_draft():
    payload = _payload()
    employee_id = str(payload.get('employeeId') or '').strip()
    selected = payload.get('selectedDates', [])
    attachment = request.files.get('attachment')
    if attachment is not None and not attachment.filename: attachment = None
    if not employee_id: return jsonify({"error": "Employee ID is required."}), 400
    if not isinstance(selected, list): return jsonify({"error": "Selected dates are required and must be an array"}), 400
    if not selected and attachment is None: return jsonify({"error": "Select at least one date or attach an image."}), 400
    if attachment is not None and not _allowed_attachment(attachment.filename): return jsonify({"error": "Please attach a PNG, JPG, or JPEG image."}), 400
    user = User.query.filter_by(employee_id=employee_id).first()
    designation = user.designation if user else payload.get('userDesignation')
    location = user.location if user else payload.get('userLocation')
    today = _today()
    try:
        if app.config['ENFORCE_DAY_COUNT']: dates = roster_calendar.check_selection(designation, selected, today, has_attachment=attachment is not None, tz=_client_tz())
        else: dates = roster_calendar.normalize_dates(selected, _client_tz())
    except SelectionPolicyError as e: return jsonify({"error": str(e)}), 400
    except ValueError: return jsonify({"error": "Selected dates must be ISO formatted dates."}), 400
    stored_name = _store_attachment(attachment) if attachment is not None else None
    old_attachments = []
    for existing in DateSelection.query.filter_by(employee_id=employee_id, status=DRAFT).all():
        old_attachments.append(existing.attachment)
        db.session.delete(existing)
    record = DateSelection(user_id=user.id if user else _as_int(payload.get('userId')), employee_id=employee_id, user_designation=designation, user_location=location, selected_dates=[d.isoformat() for d in dates], status=DRAFT, month=today.month, year=today.year, saved_at=datetime.now(), attachment=stored_name)
    db.session.add(record)
    try: db.session.commit()
    except Exception:
        if stored_name: os.remove(os.path.join(_upload_folder(), stored_name))
        raise
    for name in old_attachments: _remove_attachment(name)
    logging.info(f"Draft {record.id} saved for {employee_id} with {len(dates)} dates")
    return jsonify({"message": "Draft saved successfully", "savedDates": len(dates), "record": record.to_dict()})

@app.route("/api/submit-for-review", methods=['POST'])
@api_error_handler
@serialized_write
def submit_for_review():
    employee_id = str((request.get_json(silent=True) or {}).get('employeeId') or '').strip()
    draft = DateSelection.query.filter_by(employee_id=employee_id, status=DRAFT).first() if employee_id else None
    if not draft: return jsonify({"error": "No draft found for this user"}), 404
    draft.status, draft.submitted_at = PENDING, datetime.now()
    db.session.commit()
    logging.info(f"Selection {draft.id} submitted for review by {employee_id}")
    return jsonify({"message": "Selection submitted for review successfully", "record": draft.to_dict()})

@app.route("/api/get-draft/<string:employee_id>", methods=['GET'])
@api_error_handler
def get_draft(employee_id):
    record = DateSelection.query.filter_by(employee_id=employee_id, status=DRAFT).first()
    if record: return jsonify(record.to_dict())
    return jsonify({"message": "No draft found for this user", "selectedDates": []})

@app.route("/api/get-submitted/<string:employee_id>", methods=['GET'])
@api_error_handler
def get_submitted(employee_id):
    record = DateSelection.query.filter(DateSelection.employee_id == employee_id, DateSelection.status.in_(SUBMITTED_STATUSES)).order_by(DateSelection.submitted_at.desc(), DateSelection.id.desc()).first()
    if record: return jsonify(record.to_dict())
    return jsonify({"message": "No submitted selection found for this user", "selectedDates": []})

@app.route("/api/get-approved/<string:employee_id>", methods=['GET'])
@api_error_handler
def get_approved(employee_id):
    records = DateSelection.query.filter_by(employee_id=employee_id, status=APPROVED).order_by(DateSelection.reviewed_at).all()
    return jsonify([r.to_dict() for r in records])

@app.route("/api/approval-status/<string:employee_id>", methods=['GET'])
@api_error_handler
def approval_status(employee_id):
    record = DateSelection.query.filter_by(employee_id=employee_id).order_by(DateSelection.id.desc()).first()
    if not record: return jsonify({"employeeId": employee_id, "status": "none", "record": None})
    return jsonify({"employeeId": employee_id, "status": record.status, "record": record.to_dict()})

@app.route("/api/submitted-selections", methods=['GET'])
@api_error_handler
def submitted_selections():
    records = DateSelection.query.filter(DateSelection.status.in_(SUBMITTED_STATUSES)).order_by(DateSelection.submitted_at).all()
    return jsonify([r.to_dict() for r in records])

def _pending_submission(payload):
    selection_id = _as_int(payload.get('selectionId'))
    if selection_id is None: return None
    return DateSelection.query.filter_by(id=selection_id, status=PENDING).first()

@app.route("/api/approve-selection", methods=['POST'])
@api_error_handler
@serialized_write
def approve_selection():
    payload = request.get_json(silent=True) or {}
    submission = _pending_submission(payload)
    if not submission: return jsonify({"error": "Submitted selection not found"}), 404
    submission.status, submission.reviewed_at = APPROVED, datetime.now()
    submission.admin_comment = (payload.get('adminComment') or '').strip() or None
    submission.reviewed_by = payload.get('reviewedBy')
    db.session.commit()
    logging.info(f"Selection {submission.id} approved")
    return jsonify({"message": "Selection approved successfully", "record": submission.to_dict()})

@app.route("/api/reject-selection", methods=['POST'])
@api_error_handler
@serialized_write
def reject_selection():
    payload = request.get_json(silent=True) or {}
    comment = (payload.get('adminComment') or '').strip()
    if not comment: return jsonify({"error": "Rejection reason is required"}), 400
    submission = _pending_submission(payload)
    if not submission: return jsonify({"error": "Submitted selection not found"}), 404
    submission.status, submission.reviewed_at, submission.admin_comment = REJECTED, datetime.now(), comment
    submission.reviewed_by = payload.get('reviewedBy')
    db.session.commit()
    logging.info(f"Selection {submission.id} rejected")
    return jsonify({"message": "Selection rejected successfully", "record": submission.to_dict()})

# --- Legacy Flat Date List ---
@app.route("/api/save-dates", methods=['POST'])
@api_error_handler
@serialized_write
def save_dates():
    payload = request.get_json(silent=True) or {}
    selected, employee_id = payload.get('selectedDates'), str(payload.get('employeeId') or '').strip()
    if not isinstance(selected, list): return jsonify({"error": "Selected dates are required and must be an array"}), 400
    if not employee_id: return jsonify({"error": "Employee ID is required."}), 400
    try: dates = [d.isoformat() for d in roster_calendar.normalize_dates(selected, _client_tz())]
    except ValueError: return jsonify({"error": "Selected dates must be ISO formatted dates."}), 400
    today = _today()
    record = SavedDates.query.filter_by(employee_id=employee_id).first()
    if not record:
        record = SavedDates(employee_id=employee_id)
        db.session.add(record)
    record.user_id, record.user_designation, record.user_location = _as_int(payload.get('userId')), payload.get('userDesignation'), payload.get('userLocation')
    record.selected_dates, record.month, record.year, record.saved_at = dates, today.month, today.year, datetime.now()
    db.session.commit()
    return jsonify({"message": "Selected dates saved successfully", "savedDates": len(dates), "record": record.to_dict()})

@app.route("/api/get-dates/<string:employee_id>", methods=['GET'])
@api_error_handler
def get_dates(employee_id):
    record = SavedDates.query.filter_by(employee_id=employee_id).first()
    if record: return jsonify(record.to_dict())
    return jsonify({"message": "No saved dates found for this user", "selectedDates": []})

@app.route("/api/all-saved-dates", methods=['GET'])
@api_error_handler
def all_saved_dates():
    return jsonify([r.to_dict() for r in SavedDates.query.order_by(SavedDates.id).all()])

# --- Calendar ---
@app.route("/api/working-days", methods=['GET'])
@api_error_handler
def get_working_days_api():
    today = _today()
    year, month = _as_int(request.args.get('year', today.year)), _as_int(request.args.get('month', today.month))
    if not year or not month or not 1 <= month <= 12: return jsonify({"error": "Valid year and month are required."}), 400
    return jsonify([d.isoformat() for d in roster_calendar.working_days(year, month)])

@app.route("/api/calendar", methods=['GET'])
@api_error_handler
def calendar_week():
    today = _today()
    try: anchor = roster_calendar.parse_selected_date(request.args['week']) if request.args.get('week') else today
    except ValueError: return jsonify({"error": "Week must be an ISO date."}), 400
    employee_id = request.args.get('employeeId')
    draft = DateSelection.query.filter_by(employee_id=employee_id, status=DRAFT).first() if employee_id else None
    view = roster_calendar.week_view(anchor, today, draft.selected_dates if draft else ())
    view.update(roster_calendar.month_window(today))
    user = User.query.filter_by(employee_id=employee_id).first() if employee_id else None
    if user:
        low, high = roster_calendar.selection_bounds(user.designation, today)
        view.update({"designation": user.designation, "minDays": low, "maxDays": high, "exactCount": roster_calendar.is_programmer(user.designation)})
    return jsonify(view)

# --- User Directory ---
@app.route("/api/login", methods=['POST'])
@api_error_handler
def login():
    payload = request.get_json(silent=True) or {}
    user = User.query.filter_by(employee_id=str(payload.get('employeeId') or '').strip()).first()
    if not user or not user.check_password(payload.get('password')): return jsonify({"error": "Invalid employee ID or password."}), 401
    if payload.get('role') == 'admin' and user.role != 'admin': return jsonify({"error": "Invalid employee ID or password."}), 401
    return jsonify({"message": "Login successful", "user": user.to_dict()})

@app.route("/api/users", methods=['GET', 'POST'])
@api_error_handler
def handle_users():
    if request.method == 'GET': return jsonify(_directory())
    return _create_user(request.get_json(silent=True) or {})

@serialized_write
def _create_user(payload):
    error = _validate_user_fields(payload, require_password=True)
    if error: return jsonify({"error": error}), 400
    employee_id = str(payload['employeeId']).strip()
    if User.query.filter_by(employee_id=employee_id).first(): return jsonify({"error": f"User with employee ID '{employee_id}' already exists."}), 409
    user = User(employee_id=employee_id, name=str(payload['name']).strip(), designation=payload['designation'], location=str(payload['location']).strip(), role=payload.get('role', 'user'), permissions=_permissions(payload.get('permissions')))
    user.set_password(payload['password'])
    db.session.add(user)
    db.session.commit()
    logging.info(f"User {employee_id} created as {user.role}")
    return jsonify({"message": f"User {user.name} created successfully.", "user": user.to_dict()}), 201

@app.route("/api/users/<int:user_id>", methods=['PUT', 'DELETE'])
@api_error_handler
@serialized_write
def handle_user(user_id):
    user = db.session.get(User, user_id)
    if not user: return jsonify({"error": "User not found"}), 404
    if request.method == 'DELETE':
        owned = db.or_(DateSelection.employee_id == user.employee_id, DateSelection.user_id == user.id)
        attachments = [r.attachment for r in DateSelection.query.filter(owned).all() if r.attachment]
        removed = DateSelection.query.filter(owned).delete(synchronize_session=False)
        SavedDates.query.filter(db.or_(SavedDates.employee_id == user.employee_id, SavedDates.user_id == user.id)).delete(synchronize_session=False)
        name = user.name
        db.session.delete(user)
        db.session.commit()
        for filename in attachments: _remove_attachment(filename)
        logging.info(f"User {name} deleted with {removed} selections")
        return jsonify({"message": f"User {name} deleted.", "deletedUser": name, "deletedSelections": removed})
    payload = request.get_json(silent=True) or {}
    error = _validate_user_fields(payload, require_password=False)
    if error: return jsonify({"error": error}), 400
    new_employee_id = str(payload['employeeId']).strip()
    if new_employee_id != user.employee_id:
        if User.query.filter_by(employee_id=new_employee_id).first(): return jsonify({"error": f"User with employee ID '{new_employee_id}' already exists."}), 409
        DateSelection.query.filter_by(employee_id=user.employee_id).update({DateSelection.employee_id: new_employee_id})
        SavedDates.query.filter_by(employee_id=user.employee_id).update({SavedDates.employee_id: new_employee_id})
        user.employee_id = new_employee_id
    user.name, user.designation, user.location = str(payload['name']).strip(), payload['designation'], str(payload['location']).strip()
    user.role = payload.get('role', user.role)
    if 'permissions' in payload: user.permissions = _permissions(payload.get('permissions'))
    if payload.get('password'): user.set_password(payload['password'])
    db.session.commit()
    return jsonify({"message": f"User {user.name} updated successfully.", "user": user.to_dict()})

@app.route("/api/users-not-submitted", methods=['GET'])
@api_error_handler
def users_not_submitted():
    today = _today()
    rows = DateSelection.query.filter(DateSelection.month == today.month, DateSelection.year == today.year, DateSelection.status.in_(SUBMITTED_STATUSES + (APPROVED,))).all()
    submitted = {r.employee_id for r in rows}
    users = User.query.filter(User.role != 'admin').order_by(User.id).all()
    missing = [u.to_dict() for u in users if u.employee_id not in submitted]
    return jsonify({ "month": today.month, "year": today.year, "totalUsers": len(users), "submittedCount": len(submitted), "notSubmittedCount": len(missing), "usersNotSubmitted": missing })

# --- Attachments ---
@app.route("/uploads/<path:filename>", methods=['GET'])
def uploaded_file(filename):
    return send_from_directory(_upload_folder(), filename)

# --- Admin Data and Export ---
@app.route("/api/data", methods=['GET'])
@api_error_handler
def handle_data():
    data = {**_directory(), **_collections()}
    data["selectedDates"] = [r.to_dict() for r in SavedDates.query.order_by(SavedDates.id).all()]
    return jsonify(data)

def _format_dt(value): return datetime.fromisoformat(value).strftime('%Y-%m-%d %H:%M') if value else ''

def _write_sheet(workbook, title, headers, rows):
    ws = workbook.create_sheet(title)
    ws.append(headers)
    for cell in ws[1]: cell.font = Font(bold=True)
    for row in rows: ws.append(row)

@app.route('/api/export', methods=['GET'])
@api_error_handler
def export_workbook():
    directory, collections = _directory(), _collections()
    names = {u['employeeId']: u['name'] for u in directory['users'] + directory['admins']}
    wb = Workbook()
    wb.remove(wb.active)
    _write_sheet(wb, 'Users', ['User ID', 'Name', 'Employee ID', 'Designation', 'Location', 'Role'], [[u['id'], u['name'], u['employeeId'], u['designation'], u['location'], u['role']] for u in directory['users']])
    _write_sheet(wb, 'Admins', ['Admin ID', 'Name', 'Employee ID', 'Designation', 'Location', 'Role', 'Permissions'], [[u['id'], u['name'], u['employeeId'], u['designation'], u['location'], u['role'], ', '.join(u['permissions'])] for u in directory['admins']])
    _write_sheet(wb, 'Approved Bookings', ['Booking ID', 'Employee ID', 'User Name', 'Designation', 'Location', 'Month', 'Year', 'Status', 'Total Dates', 'Submitted Date', 'Approved Date', 'Admin Comment', 'Roster Dates'],
                 [[r['id'], r['employeeId'], names.get(r['employeeId'], 'Unknown User'), r['userDesignation'], r['userLocation'], r['month'], r['year'], r['status'], len(r['selectedDates']), _format_dt(r['submittedAt']), _format_dt(r['reviewedAt']), r['adminComment'] or 'None', ', '.join(r['selectedDates'])] for r in collections['approvedSelections']])
    _write_sheet(wb, 'Pending Submissions', ['Submission ID', 'Employee ID', 'User Name', 'Designation', 'Location', 'Month', 'Year', 'Status', 'Total Dates', 'Submitted Date', 'Roster Dates'],
                 [[r['id'], r['employeeId'], names.get(r['employeeId'], 'Unknown User'), r['userDesignation'], r['userLocation'], r['month'], r['year'], r['status'], len(r['selectedDates']), _format_dt(r['submittedAt']), ', '.join(r['selectedDates'])] for r in collections['submittedSelections']])
    output = io.BytesIO()
    wb.save(output)
    output.seek(0)
    filename = f"Roster_Export_{_today().isoformat()}.xlsx"
    return send_file(output, as_attachment=True, download_name=filename, mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet')

@app.route('/api/backup', methods=['GET'])
@api_error_handler
def backup_data():
    data = {**_directory(), **_collections(), "selectedDates": [r.to_dict() for r in SavedDates.query.all()]}
    mem_file = io.BytesIO(json.dumps(data, indent=4).encode('utf-8'))
    mem_file.seek(0)
    timestamp = datetime.now().strftime('%Y-%m-%d_%H%M%S')
    filename = f"roster_backup_{timestamp}.json"
    return send_file(mem_file, as_attachment=True, download_name=filename, mimetype='application/json')

# --- CLI ---
DEMO_USERS = [
    {"employeeId": "ADMIN001", "name": "Administrator", "password": "admin123", "designation": "System Administrator", "location": "Head Office", "role": "admin", "permissions": ["approve", "manage_users"]},
    {"employeeId": "EMP001", "name": "Demo Programmer", "password": "password", "designation": "Programmer Analyst", "location": "Chennai", "role": "user"},
    {"employeeId": "EMP002", "name": "Demo Lead", "password": "password", "designation": "Technical Lead", "location": "Bangalore", "role": "user"},
]

@app.cli.command('init-db')
def init_db_command():
    """Create all tables."""
    db.create_all()
    logging.info(f"Database ready at {app.config['SQLALCHEMY_DATABASE_URI']}")

@app.cli.command('seed-users')
def seed_users_command():
    """Create the demo accounts that do not exist yet."""
    db.create_all()
    for data in DEMO_USERS:
        if User.query.filter_by(employee_id=data['employeeId']).first(): continue
        user = User(employee_id=data['employeeId'], name=data['name'], designation=data['designation'], location=data['location'], role=data['role'], permissions=data.get('permissions', []))
        user.set_password(data['password'])
        db.session.add(user)
    db.session.commit()
    logging.info("Demo users seeded.")

if __name__ == "__main__":
    with app.app_context(): db.create_all()
    app.run(host='0.0.0.0', port=int(os.environ.get('PORT', 3001)), debug=True)
