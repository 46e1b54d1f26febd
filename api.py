import io
import logging
from datetime import date

from flask import Blueprint, current_app, request, jsonify, send_file, send_from_directory, abort
from sqlalchemy.exc import IntegrityError

import reports
from attendance import (ValidationError, TeacherNotFound, ConflictError,
                        store_photo_pair, submit_attendance, get_status, parse_teacher_id)
from auth import authenticate_teacher, authenticate_admin
from database import db, Teacher

logger = logging.getLogger(__name__)

api_bp = Blueprint('api', __name__)


def photo_storage():
    return current_app.extensions['photo_storage']


def request_data():
    return request.get_json(silent=True) or request.form.to_dict()


@api_bp.route('/health')
def health():
    return 'OK', 200


# ==========================================================
# LOGIN
# ==========================================================
@api_bp.route('/login/teacher', methods=['POST'])
def login_teacher():
    data = request_data()
    employee_code = data.get('employee_code')
    password = data.get('password')
    if not employee_code or not password:
        raise ValidationError('Employee code and password are required.')

    teacher = authenticate_teacher(employee_code, password)
    if teacher is None:
        return jsonify({'success': False, 'error': 'Invalid employee code or password.'}), 401

    return jsonify({'success': True, 'message': 'Login successful.', 'teacher': teacher.to_dict()})


@api_bp.route('/login/admin', methods=['POST'])
def login_admin():
    data = request_data()
    username = data.get('username')
    password = data.get('password')
    if not username or not password:
        raise ValidationError('Username and password are required.')

    if not authenticate_admin(username, password):
        return jsonify({'success': False, 'error': 'Invalid credentials.'}), 401
    return jsonify({'success': True, 'message': 'Admin login successful.'})


# ==========================================================
# TEACHER MANAGEMENT
# ==========================================================
def _optional_float(value, field):
    if value is None or value == '':
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be a number.')


def _get_teacher_or_404(teacher_id):
    teacher = db.session.get(Teacher, teacher_id)
    if teacher is None:
        raise TeacherNotFound('Teacher not found.')
    return teacher


def _commit_teacher_changes():
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError('A teacher with this email or employee code already exists.')


@api_bp.route('/teachers', methods=['POST'])
def create_teacher():
    data = request_data()
    required = ['name', 'email', 'employee_code', 'password', 'latitude', 'longitude']
    if any(data.get(field) in (None, '') for field in required):
        raise ValidationError('Missing required fields: name, email, employee_code, password, latitude, and longitude.')

    teacher = Teacher(
        name=data['name'],
        email=data['email'],
        employee_code=data['employee_code'],
        latitude=_optional_float(data['latitude'], 'latitude'),
        longitude=_optional_float(data['longitude'], 'longitude'),
    )
    teacher.set_password(data['password'])
    db.session.add(teacher)
    _commit_teacher_changes()

    logger.info('Teacher %s created (id %s)', teacher.employee_code, teacher.id)
    return jsonify({
        'message': 'Teacher added successfully!',
        'teacherId': teacher.id,
        'teacher': teacher.to_dict()
    }), 201


@api_bp.route('/teachers', methods=['GET'])
def list_teachers():
    teachers = db.session.query(Teacher).order_by(Teacher.name).all()
    return jsonify([t.to_dict() for t in teachers])


@api_bp.route('/teachers/<int:teacher_id>', methods=['GET'])
def get_teacher(teacher_id):
    return jsonify(_get_teacher_or_404(teacher_id).to_dict())


@api_bp.route('/teachers/<int:teacher_id>', methods=['PUT'])
def update_teacher(teacher_id):
    data = request_data()
    fields = ['name', 'email', 'employee_code', 'latitude', 'longitude', 'password']
    if not any(field in data for field in fields):
        raise ValidationError('At least one field must be provided for update.')

    teacher = _get_teacher_or_404(teacher_id)
    for field in ('name', 'email', 'employee_code'):
        if data.get(field):
            setattr(teacher, field, data[field])
    # Explicit null clears the designated location
    if 'latitude' in data:
        teacher.latitude = _optional_float(data['latitude'], 'latitude')
    if 'longitude' in data:
        teacher.longitude = _optional_float(data['longitude'], 'longitude')
    if data.get('password'):
        teacher.set_password(data['password'])

    _commit_teacher_changes()
    return jsonify({'message': 'Teacher details updated successfully.', 'teacher': teacher.to_dict()})


@api_bp.route('/teachers/<int:teacher_id>', methods=['DELETE'])
def delete_teacher(teacher_id):
    teacher = _get_teacher_or_404(teacher_id)
    references = [ref for record in teacher.sessions for ref in record.photo_references if ref]
    db.session.delete(teacher)
    db.session.commit()

    storage = photo_storage()
    for reference in references:
        storage.delete(reference)
    logger.info('Teacher %s deleted with %d stored photos', teacher_id, len(references))
    return jsonify({'message': 'Teacher deleted successfully.'})


# ==========================================================
# ATTENDANCE
# ==========================================================
@api_bp.route('/attendance', methods=['POST'])
def mark_attendance():
    storage = photo_storage()
    teacher_id = request.form.get('teacher_id')

    # Both photos are written before validation; rejections release them again
    photos = store_photo_pair(request.files.get('photo1'), request.files.get('photo2'),
                              storage, teacher_id)

    result = submit_attendance(
        teacher_id,
        request.form.get('latitude'),
        request.form.get('longitude'),
        photos,
        storage
    )
    return jsonify(result.to_dict()), result.status_code


@api_bp.route('/attendance/status/<teacher_id>')
def attendance_status(teacher_id):
    return jsonify(get_status(teacher_id))


@api_bp.route('/attendance/today')
def attendance_today():
    records = reports.sessions_for_day(date.today(), photo_storage())
    return jsonify({'count': len(records), 'data': records})


@api_bp.route('/attendance/absent')
def attendance_absent():
    teachers = reports.absent_teachers(date.today())
    return jsonify({'count': len(teachers), 'data': teachers})


@api_bp.route('/attendance/report/all')
def attendance_report_all():
    start, end = reports.parse_date_range(request.args.get('startDate'), request.args.get('endDate'))
    records = reports.sessions_between(start, end, photo_storage())
    return jsonify({'count': len(records), 'data': records})


@api_bp.route('/attendance/report/teacher/<int:teacher_id>')
def attendance_report_teacher(teacher_id):
    start, end = reports.parse_date_range(request.args.get('startDate'), request.args.get('endDate'))
    records = reports.sessions_between(start, end, photo_storage(), teacher_id=teacher_id)
    return jsonify({'count': len(records), 'data': records})


@api_bp.route('/attendance/report/export')
def attendance_report_export():
    start, end = reports.parse_date_range(request.args.get('startDate'), request.args.get('endDate'))
    csv_text = reports.export_csv(start, end, photo_storage())
    return send_file(
        io.BytesIO(csv_text.encode('utf-8')),
        mimetype='text/csv',
        as_attachment=True,
        download_name=f'attendance_{start.isoformat()}_{end.isoformat()}.csv'
    )


@api_bp.route('/attendance/<teacher_id>')
def attendance_history(teacher_id):
    records = reports.teacher_history(parse_teacher_id(teacher_id), photo_storage(),
                                      period=request.args.get('filter'))
    return jsonify(records)


@api_bp.route('/dashboard/stats')
def dashboard_stats():
    return jsonify(reports.dashboard_stats(date.today()))


@api_bp.route('/uploads/<path:filename>')
def uploaded_photo(filename):
    storage = photo_storage()
    if storage.directory is None:
        abort(404)
    return send_from_directory(storage.directory, filename)
