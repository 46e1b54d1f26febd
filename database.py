import sqlite3
from datetime import datetime

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event, UniqueConstraint
from sqlalchemy.engine import Engine
from werkzeug.security import generate_password_hash, check_password_hash

db = SQLAlchemy()


@event.listens_for(Engine, 'connect')
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores REFERENCES clauses unless asked per connection
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()


class Teacher(db.Model):
    __tablename__ = 'teachers'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    employee_code = db.Column(db.String(50), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    # Designated location; attendance is refused until both are set
    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.now)

    sessions = db.relationship('AttendanceSession', backref='teacher',
                               cascade='all, delete-orphan', passive_deletes=True)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    @property
    def has_location(self):
        return self.latitude is not None and self.longitude is not None

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'employee_code': self.employee_code,
            'latitude': self.latitude,
            'longitude': self.longitude,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<Teacher {self.employee_code}>'


class AttendanceSession(db.Model):
    """One teacher's attendance for one calendar day."""
    __tablename__ = 'attendance'
    __table_args__ = (
        UniqueConstraint('teacher_id', 'session_date', name='uq_attendance_teacher_day'),
    )

    id = db.Column(db.Integer, primary_key=True)
    teacher_id = db.Column(db.Integer, db.ForeignKey('teachers.id', ondelete='CASCADE'), nullable=False)
    session_date = db.Column(db.Date, nullable=False, index=True)

    check_in_time = db.Column(db.DateTime, nullable=False)
    check_in_photo1 = db.Column(db.String(255), nullable=False)
    check_in_photo2 = db.Column(db.String(255), nullable=False)
    check_in_latitude = db.Column(db.Float, nullable=False)
    check_in_longitude = db.Column(db.Float, nullable=False)

    check_out_time = db.Column(db.DateTime, nullable=True)
    check_out_photo1 = db.Column(db.String(255), nullable=True)
    check_out_photo2 = db.Column(db.String(255), nullable=True)
    check_out_latitude = db.Column(db.Float, nullable=True)
    check_out_longitude = db.Column(db.Float, nullable=True)

    @property
    def is_completed(self):
        return self.check_out_time is not None

    @property
    def photo_references(self):
        return [self.check_in_photo1, self.check_in_photo2,
                self.check_out_photo1, self.check_out_photo2]

    def to_dict(self, photo_url=None):
        """Serialize the row; ``photo_url`` maps a stored reference to a public URL."""
        resolve = photo_url or (lambda ref: ref)
        return {
            'id': self.id,
            'teacher_id': self.teacher_id,
            'session_date': self.session_date.isoformat(),
            'check_in_time': self.check_in_time.isoformat(),
            'check_out_time': self.check_out_time.isoformat() if self.check_out_time else None,
            'check_in_photo_url1': resolve(self.check_in_photo1),
            'check_in_photo_url2': resolve(self.check_in_photo2),
            'check_out_photo_url1': resolve(self.check_out_photo1),
            'check_out_photo_url2': resolve(self.check_out_photo2),
            'check_in_latitude': self.check_in_latitude,
            'check_in_longitude': self.check_in_longitude,
            'check_out_latitude': self.check_out_latitude,
            'check_out_longitude': self.check_out_longitude,
        }

    def __repr__(self):
        return f'<AttendanceSession teacher={self.teacher_id} day={self.session_date}>'


def create_demo_data():
    """Seed a couple of teachers so a fresh install can be tried out."""
    demo = [
        ('Asha Rao', 'asha.rao@example.edu', 'T1001', 12.9716, 77.5946),
        ('Daniel Mensah', 'daniel.mensah@example.edu', 'T1002', 5.6037, -0.1870),
        ('Unassigned Teacher', 'unassigned@example.edu', 'T1003', None, None),
    ]
    for name, email, code, lat, lon in demo:
        teacher = Teacher(name=name, email=email, employee_code=code, latitude=lat, longitude=lon)
        teacher.set_password('changeme')
        db.session.add(teacher)
    db.session.commit()
