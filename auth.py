from flask import current_app
from werkzeug.security import generate_password_hash, check_password_hash

from database import db, Teacher


def authenticate_teacher(employee_code, password):
    teacher = db.session.query(Teacher).filter_by(employee_code=employee_code).first()
    if teacher and teacher.check_password(password):
        return teacher
    return None


def init_admin_credentials(app):
    # A plaintext ADMIN_PASSWORD is only hashed once, at startup
    if not app.config.get('ADMIN_PASSWORD_HASH') and app.config.get('ADMIN_PASSWORD'):
        app.config['ADMIN_PASSWORD_HASH'] = generate_password_hash(app.config['ADMIN_PASSWORD'])


def authenticate_admin(username, password):
    admin_user = current_app.config.get('ADMIN_USER')
    password_hash = current_app.config.get('ADMIN_PASSWORD_HASH')
    if not admin_user or not password_hash:
        return False
    return username == admin_user and check_password_hash(password_hash, password)
