"""
photo_storage.py
-----------------
Disk storage for check-in/check-out photos. Follows the Flask extension
pattern (create once, ``init_app`` per application) so the upload folder
is bound at startup instead of living in module globals.
"""

import logging
import os
import secrets
import time

from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)


class PhotoStorage:

    def __init__(self, app=None):
        self.directory = None
        self.url_prefix = '/uploads'
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        self.directory = os.path.abspath(app.config['UPLOAD_FOLDER'])
        self.url_prefix = app.config.get('UPLOAD_URL_PREFIX', '/uploads').rstrip('/')
        os.makedirs(self.directory, exist_ok=True)
        app.extensions['photo_storage'] = self

    def save(self, upload, teacher_id, field_name):
        """Write an uploaded file to disk and return its stored reference."""
        _, ext = os.path.splitext(secure_filename(upload.filename or ''))
        unique_suffix = f'{int(time.time() * 1000)}-{secrets.randbelow(10**9)}'
        filename = secure_filename(f'{teacher_id or "unknown"}-{field_name}-{unique_suffix}{ext.lower()}')
        path = os.path.join(self.directory, filename)
        upload.save(path)
        return path

    def delete(self, reference):
        """Best-effort removal; returns False instead of raising."""
        if not reference:
            return False
        try:
            os.remove(reference)
            return True
        except FileNotFoundError:
            return False
        except OSError:
            logger.warning('Could not delete photo %s', reference, exc_info=True)
            return False

    def exists(self, reference):
        return bool(reference) and os.path.isfile(reference)

    def public_url(self, reference):
        if not reference:
            return None
        return f'{self.url_prefix}/{os.path.basename(reference)}'


photos = PhotoStorage()
