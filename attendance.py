"""
attendance.py
-----------------
Daily attendance session lifecycle for teachers.

A teacher gets one session per calendar day. The first accepted submission
opens it (check-in), the second closes it (check-out) and anything after
that is refused. Every submission is geofenced against the teacher's
designated location, and the two photos that came with a refused
submission are removed from storage.
"""

import logging
from datetime import datetime, date

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from database import db, Teacher, AttendanceSession
from location_check import check_attendance_location, ALLOWED_RADIUS_METERS

logger = logging.getLogger(__name__)

AWAITING_CHECK_IN = 'awaiting_check_in'
AWAITING_CHECK_OUT = 'awaiting_check_out'
COMPLETED = 'completed'

CHECK_IN = 'check_in'
CHECK_OUT = 'check_out'


# ==========================================================
# ERRORS
# ==========================================================
class AttendanceError(Exception):
    kind = 'internal_error'
    status_code = 500

    def __init__(self, message, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        payload = {'success': False, 'error': self.kind, 'message': self.message}
        payload.update(self.details)
        return payload


class ValidationError(AttendanceError):
    kind = 'validation_error'
    status_code = 400


class ConflictError(AttendanceError):
    kind = 'conflict'
    status_code = 409


class TeacherNotFound(AttendanceError):
    kind = 'not_found'
    status_code = 404


class OutOfRangeError(AttendanceError):
    kind = 'out_of_range'
    status_code = 403


class InternalError(AttendanceError):
    pass


# ==========================================================
# PHOTOS
# ==========================================================
class PhotoPair:
    """The two stored photos submitted with one attempt."""

    def __init__(self, first=None, second=None):
        self.first = first
        self.second = second

    @property
    def is_complete(self):
        return bool(self.first) and bool(self.second)

    def references(self):
        return [ref for ref in (self.first, self.second) if ref]

    def release(self, storage):
        for reference in self.references():
            if not storage.delete(reference):
                logger.warning('Photo %s was not removed during cleanup', reference)


def store_photo_pair(upload1, upload2, storage, teacher_id):
    """Persist both uploads, or neither when one of them is missing."""
    if not _has_file(upload1) or not _has_file(upload2):
        return PhotoPair()

    pair = PhotoPair()
    try:
        pair.first = storage.save(upload1, teacher_id, 'photo1')
        pair.second = storage.save(upload2, teacher_id, 'photo2')
    except Exception:
        logger.exception('Failed to store photos for teacher %s', teacher_id)
        pair.release(storage)
        raise InternalError('Could not store the submitted photos.')
    return pair


def _has_file(upload):
    return upload is not None and bool(getattr(upload, 'filename', None))


# ==========================================================
# STATE
# ==========================================================
class SessionState:

    def __init__(self, status, session=None):
        self.status = status
        self.session = session

    def __repr__(self):
        return f'<SessionState {self.status}>'


def find_session_for_day(teacher_id, day):
    return db.session.query(AttendanceSession).filter_by(
        teacher_id=teacher_id,
        session_date=day
    ).first()


def determine_state(teacher_id, day=None):
    session = find_session_for_day(teacher_id, day or date.today())
    if session is None:
        return SessionState(AWAITING_CHECK_IN)
    if session.check_out_time is None:
        return SessionState(AWAITING_CHECK_OUT, session)
    return SessionState(COMPLETED, session)


def load_teacher(teacher_id):
    return db.session.get(Teacher, teacher_id)


def get_status(teacher_id, today=None):
    teacher_id = parse_teacher_id(teacher_id)
    state = determine_state(teacher_id, today)
    status = {'status': state.status}
    if state.session is not None:
        status['check_in_time'] = state.session.check_in_time.isoformat()
        if state.session.check_out_time is not None:
            status['check_out_time'] = state.session.check_out_time.isoformat()
    return status


# ==========================================================
# INPUT PARSING
# ==========================================================
def parse_teacher_id(value):
    if value is None or str(value).strip() == '':
        raise ValidationError('teacher_id is missing.')
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'Invalid teacher_id: {value!r}.')


def parse_coordinates(latitude, longitude):
    try:
        lat, lon = float(latitude), float(longitude)
    except (TypeError, ValueError):
        raise ValidationError('Latitude and longitude must be numbers.')
    if not (-90.0 <= lat <= 90.0) or not (-180.0 <= lon <= 180.0):
        raise ValidationError('Latitude and longitude are out of range.')
    return lat, lon


def _is_blank(value):
    return value is None or (isinstance(value, str) and not value.strip())


# ==========================================================
# SUBMISSION
# ==========================================================
class SubmissionResult:
    """Outcome of one check-in/check-out attempt."""

    def __init__(self, action=None, session_id=None, distance=None, error=None):
        self.action = action
        self.session_id = session_id
        self.distance = distance
        self.error = error

    @property
    def ok(self):
        return self.error is None

    @property
    def status_code(self):
        if self.error is not None:
            return self.error.status_code
        return 201 if self.action == CHECK_IN else 200

    def to_dict(self):
        if self.error is not None:
            return self.error.to_dict()
        message = 'Check-in successful!' if self.action == CHECK_IN else 'Check-out successful!'
        return {
            'success': True,
            'action': self.action,
            'message': message,
            'attendanceId': self.session_id,
            'distance': round(self.distance, 2),
        }


def submit_attendance(teacher_id, latitude, longitude, photos, storage, now=None):
    """Validate one attempt and record it as a check-in or check-out.

    Business-rule failures come back as a rejected ``SubmissionResult``;
    the submitted photos are released from ``storage`` on every rejection.
    """
    now = now or datetime.now()
    try:
        action, session_id, distance = _record_attendance(teacher_id, latitude, longitude, photos, now)
    except AttendanceError as exc:
        db.session.rollback()
        photos.release(storage)
        logger.info('Attendance rejected for teacher %s: %s (%s)', teacher_id, exc.kind, exc.message)
        return SubmissionResult(error=exc)
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Database error while recording attendance for teacher %s', teacher_id)
        photos.release(storage)
        return SubmissionResult(error=InternalError('An internal server error occurred.'))

    logger.info('Teacher %s %s accepted at %.2fm (session %s)', teacher_id, action, distance, session_id)
    return SubmissionResult(action=action, session_id=session_id, distance=distance)


def _record_attendance(teacher_id, latitude, longitude, photos, now):
    teacher_id = parse_teacher_id(teacher_id)
    if _is_blank(latitude) or _is_blank(longitude) or not photos.is_complete:
        raise ValidationError('Missing required fields: latitude, longitude, and two photos.')
    lat, lon = parse_coordinates(latitude, longitude)

    state = determine_state(teacher_id, now.date())
    if state.status == COMPLETED:
        raise ConflictError('Attendance session for today is already completed.')

    teacher = load_teacher(teacher_id)
    if teacher is None:
        raise TeacherNotFound(f'Teacher with ID {teacher_id} not found.')
    if not teacher.has_location:
        raise ValidationError('Your designated coordinates are not set. Please contact an administrator.')

    is_within, distance = check_attendance_location(lat, lon, teacher.latitude, teacher.longitude)
    if not is_within:
        raise OutOfRangeError(
            'You are out of the allowed range.',
            distance=round(distance, 2),
            allowed_radius=ALLOWED_RADIUS_METERS,
            details=f'Your distance is {distance:.2f}m. Allowed range is {ALLOWED_RADIUS_METERS}m.'
        )

    if state.status == AWAITING_CHECK_IN:
        return CHECK_IN, _check_in(teacher_id, lat, lon, photos, now), distance
    return CHECK_OUT, _check_out(teacher_id, state.session.id, lat, lon, photos, now), distance


def _check_in(teacher_id, lat, lon, photos, now):
    record = AttendanceSession(
        teacher_id=teacher_id,
        session_date=now.date(),
        check_in_time=now,
        check_in_photo1=photos.first,
        check_in_photo2=photos.second,
        check_in_latitude=lat,
        check_in_longitude=lon,
    )
    db.session.add(record)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        _raise_if_teacher_vanished(teacher_id)
        # Only a session that now exists means another request won the race
        if find_session_for_day(teacher_id, now.date()) is None:
            raise
        raise ConflictError('Attendance for today was already recorded by another submission.')
    return record.id


def _check_out(teacher_id, session_id, lat, lon, photos, now):
    updated = db.session.query(AttendanceSession).filter(
        AttendanceSession.id == session_id,
        AttendanceSession.check_out_time.is_(None)
    ).update({
        AttendanceSession.check_out_time: now,
        AttendanceSession.check_out_photo1: photos.first,
        AttendanceSession.check_out_photo2: photos.second,
        AttendanceSession.check_out_latitude: lat,
        AttendanceSession.check_out_longitude: lon,
    }, synchronize_session=False)

    if updated != 1:
        db.session.rollback()
        _raise_if_teacher_vanished(teacher_id)
        raise ConflictError('Attendance session for today is already completed.')
    db.session.commit()
    return session_id


def _raise_if_teacher_vanished(teacher_id):
    if db.session.get(Teacher, teacher_id) is None:
        raise TeacherNotFound(f'Teacher with ID {teacher_id} does not exist.')
