import io
import os

import pytest
from werkzeug.datastructures import FileStorage

from app import create_app
from config import TestingConfig
from database import db, Teacher


@pytest.fixture
def app(tmp_path):
    app = create_app(TestingConfig, UPLOAD_FOLDER=str(tmp_path / 'uploads'))

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def storage(app):
    return app.extensions['photo_storage']


@pytest.fixture
def make_teacher(app):
    counter = {'n': 0}

    def _make(latitude=0.0, longitude=0.0, password='secret', **kwargs):
        counter['n'] += 1
        n = counter['n']
        teacher = Teacher(
            name=kwargs.get('name', f'Teacher {n}'),
            email=kwargs.get('email', f'teacher{n}@school.test'),
            employee_code=kwargs.get('employee_code', f'EMP{n:03d}'),
            latitude=latitude,
            longitude=longitude,
        )
        teacher.set_password(password)
        db.session.add(teacher)
        db.session.commit()
        return teacher

    return _make


def fake_upload(name='photo.jpg', content=b'\xff\xd8\xff fake jpeg'):
    return FileStorage(stream=io.BytesIO(content), filename=name, content_type='image/jpeg')


def uploaded_files(storage):
    return sorted(os.listdir(storage.directory))
