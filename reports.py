"""Read-only attendance reports."""

import csv
import io
from datetime import datetime, date, timedelta

from sqlalchemy import func, select

from attendance import ValidationError
from database import db, Teacher, AttendanceSession


def parse_date_range(start, end):
    if not start or not end:
        raise ValidationError('Both startDate and endDate query parameters are required (YYYY-MM-DD).')
    try:
        start_date = datetime.strptime(start, '%Y-%m-%d').date()
        end_date = datetime.strptime(end, '%Y-%m-%d').date()
    except ValueError:
        raise ValidationError('Dates must use the YYYY-MM-DD format.')
    if start_date > end_date:
        raise ValidationError('startDate must not be after endDate.')
    return start_date, end_date


def _serialize(record, storage):
    data = record.to_dict(photo_url=storage.public_url)
    data['teacher_name'] = record.teacher.name
    data['employee_code'] = record.teacher.employee_code
    return data


def _sessions_query():
    return db.session.query(AttendanceSession).join(Teacher)


def sessions_for_day(day, storage):
    records = _sessions_query().filter(
        AttendanceSession.session_date == day
    ).order_by(AttendanceSession.check_in_time.desc()).all()
    return [_serialize(r, storage) for r in records]


def sessions_between(start, end, storage, teacher_id=None):
    q = _sessions_query().filter(AttendanceSession.session_date.between(start, end))
    if teacher_id is not None:
        q = q.filter(AttendanceSession.teacher_id == teacher_id)
    records = q.order_by(AttendanceSession.check_in_time.desc(), Teacher.name).all()
    return [_serialize(r, storage) for r in records]


def teacher_history(teacher_id, storage, period=None, now=None):
    """All sessions of one teacher, optionally limited to the last week or this month."""
    now = now or datetime.now()
    q = _sessions_query().filter(AttendanceSession.teacher_id == teacher_id)

    if period == 'week':
        q = q.filter(AttendanceSession.check_in_time >= now - timedelta(days=7))
    elif period == 'month':
        first_of_month = now.date().replace(day=1)
        q = q.filter(AttendanceSession.session_date >= first_of_month,
                     AttendanceSession.session_date <= now.date())
    elif period:
        raise ValidationError("filter must be 'week' or 'month'.")

    records = q.order_by(AttendanceSession.check_in_time.desc()).all()
    return [_serialize(r, storage) for r in records]


def absent_teachers(day):
    present = select(AttendanceSession.teacher_id).where(
        AttendanceSession.session_date == day
    )
    teachers = db.session.query(Teacher).filter(
        Teacher.id.notin_(present)
    ).order_by(Teacher.name).all()
    return [
        {'id': t.id, 'name': t.name, 'employee_code': t.employee_code, 'email': t.email}
        for t in teachers
    ]


def dashboard_stats(day=None):
    day = day or date.today()
    total_teachers = db.session.query(func.count(Teacher.id)).scalar()
    present_teachers = db.session.query(
        func.count(func.distinct(AttendanceSession.teacher_id))
    ).filter(AttendanceSession.session_date == day).scalar()

    return {
        'total_teachers': total_teachers,
        'present_today': present_teachers,
        'absent_today': total_teachers - present_teachers,
        'date': day.isoformat(),
    }


def export_csv(start, end, storage):
    output = io.StringIO()
    writer = csv.writer(output)

    writer.writerow(['Date', 'Employee Code', 'Teacher', 'Check In', 'Check Out',
                     'Check In Photo 1', 'Check In Photo 2', 'Check Out Photo 1', 'Check Out Photo 2'])

    for row in sessions_between(start, end, storage):
        writer.writerow([
            row['session_date'],
            row['employee_code'],
            row['teacher_name'],
            row['check_in_time'],
            row['check_out_time'] or '',
            row['check_in_photo_url1'] or '',
            row['check_in_photo_url2'] or '',
            row['check_out_photo_url1'] or '',
            row['check_out_photo_url2'] or '',
        ])

    return output.getvalue()
