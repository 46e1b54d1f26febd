import logging
import os

from flask import Flask, jsonify
from flask_cors import CORS
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from api import api_bp
from attendance import AttendanceError
from auth import init_admin_credentials
from config import Config
from database import db, Teacher
from photo_storage import photos

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'


def configure_logging(app):
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    app.logger.setLevel(level)


def register_error_handlers(app):

    @app.errorhandler(AttendanceError)
    def handle_attendance_error(exc):
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(exc):
        db.session.rollback()
        app.logger.exception('Unhandled database error')
        return jsonify({'success': False, 'error': 'internal_error',
                        'message': 'An internal server error occurred.'}), 500


def create_app(config=None, **overrides):
    """Build the application from a config class plus keyword overrides."""
    app = Flask(__name__)
    app.config.from_object(config or Config)
    app.config.update(overrides)

    configure_logging(app)
    CORS(app)
    db.init_app(app)
    photos.init_app(app)
    init_admin_credentials(app)

    app.register_blueprint(api_bp)
    register_error_handlers(app)
    return app


def initialize_database(app):
    """Check connectivity, create tables and optionally seed demo data."""
    with app.app_context():
        logger.info('Checking database connection...')
        try:
            db.session.execute(text('SELECT 1'))
        except SQLAlchemyError:
            logger.exception('Failed to connect to database %s', app.config['SQLALCHEMY_DATABASE_URI'].split('@')[-1])
            raise
        logger.info('Database connection successful')

        db.create_all()
        logger.info('Database tables created/checked')

        if app.config.get('SEED_DEMO_DATA') and db.session.query(Teacher).count() == 0:
            from database import create_demo_data
            create_demo_data()
            logger.info('Demo data created')


if __name__ == '__main__':
    app = create_app()
    port = int(os.environ.get('PORT', 3000))

    initialize_database(app)

    logger.info('Starting server on port %s', port)
    app.run(host='0.0.0.0', port=port, debug=False)
