import io
import os
import logging
from flask import Flask, Blueprint, current_app, jsonify, request, send_file
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from werkzeug.exceptions import HTTPException

from cache import CaseCache
from config import Config, configure_logging
from database import CourtDatabase
from documents import download_document
from exceptions import CourtDataError, StoreError, ValidationError
from fetcher import CaseFetcher
from scraper import create_scraper

logger = logging.getLogger(__name__)

MAX_HISTORY_LIMIT = 1000

limiter = Limiter(key_func=get_remote_address)
api = Blueprint('api', __name__)


def create_app(config_overrides=None, scraper=None, clock=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    database = CourtDatabase(app.config['DATABASE_PATH'])
    cache = CaseCache(database)
    if scraper is None:
        scraper = create_scraper(
            app.config['SCRAPER_MODE'],
            delay=app.config['MOCK_SCRAPER_DELAY'],
            timeout=app.config['SCRAPER_TIMEOUT'],
            clock=clock
        )

    app.extensions['court_database'] = database
    app.extensions['case_cache'] = cache
    app.extensions['case_fetcher'] = CaseFetcher(cache, scraper, clock=clock)

    limiter.init_app(app)
    app.register_blueprint(api)
    register_error_handlers(app)

    logger.info(f"Application created with {scraper.name} scraper")
    return app


def get_database():
    return current_app.extensions['court_database']


def get_fetcher():
    return current_app.extensions['case_fetcher']


def _json_body():
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError('Invalid request body')
    return payload


def register_error_handlers(app):
    @app.errorhandler(CourtDataError)
    def court_data_error(error):
        if isinstance(error, StoreError):
            logger.error(f"Store error: {error}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def http_error(error):
        messages = {
            404: 'Page not found',
            405: 'Method not allowed',
            429: 'Rate limit exceeded. Please try again later.',
        }
        return jsonify({'error': messages.get(error.code, error.description)}), error.code

    @app.errorhandler(Exception)
    def unexpected_error(error):
        logger.exception(f"Internal server error: {error}")
        return jsonify(CourtDataError().to_dict()), 500


@api.route('/api/fetch-case', methods=['POST'])
@limiter.limit(lambda: current_app.config['RATELIMIT_FETCH'])
def fetch_case():
    payload = _json_body()

    result = get_fetcher().fetch_case(
        payload.get('caseType'),
        payload.get('caseNumber'),
        payload.get('filingYear')
    )

    return jsonify({
        'data': result.record.to_dict(),
        'fromCache': result.from_cache,
        'responseTimeMs': result.response_time_ms
    })


@api.route('/api/query-history')
def query_history():
    try:
        limit = int(request.args.get('limit', 50))
    except ValueError:
        raise ValidationError('limit must be an integer')
    limit = max(1, min(limit, MAX_HISTORY_LIMIT))

    entries = current_app.extensions['case_cache'].history(limit)
    return jsonify({'queries': [entry.to_dict() for entry in entries]})


@api.route('/api/database')
def database_info():
    database = get_database()
    action = request.args.get('action')

    if action == 'stats':
        return jsonify({'stats': database.get_stats()})

    if action == 'courts':
        return jsonify({'courts': [court.to_dict() for court in database.get_courts()]})

    if action == 'case-types':
        court_id = request.args.get('courtId')
        if not court_id:
            raise ValidationError('Court ID is required')
        try:
            court_id = int(court_id)
        except ValueError:
            raise ValidationError('Court ID must be an integer')
        case_types = database.get_case_types(court_id)
        return jsonify({'caseTypes': [case_type.to_dict() for case_type in case_types]})

    if action == 'export':
        return jsonify(database.export_all())

    raise ValidationError('Invalid action')


@api.route('/api/database', methods=['POST'])
def database_admin():
    database = get_database()
    action = _json_body().get('action')

    if action == 'clear-queries':
        cleared = database.clear_table('queries')
        return jsonify({'message': f"Cleared {cleared} query records", 'cleared': cleared})

    if action == 'clear-cache':
        cleared = database.clear_table('cases')
        return jsonify({'message': f"Cleared {cleared} cached cases", 'cleared': cleared})

    if action == 'backup':
        backup_path = database.backup(current_app.config['BACKUP_DIR'])
        return jsonify({'message': 'Backup created successfully', 'backupPath': backup_path})

    raise ValidationError('Invalid action')


@api.route('/api/download-pdf', methods=['POST'])
def download_pdf():
    payload = _json_body()

    content, filename = download_document(
        payload.get('pdfUrl'),
        payload.get('title'),
        timeout=current_app.config['DOCUMENT_TIMEOUT']
    )

    return send_file(
        io.BytesIO(content),
        mimetype='application/pdf',
        as_attachment=True,
        download_name=filename
    )


@api.route('/health')
def health():
    return jsonify({'status': 'ok'})


if __name__ == '__main__':
    configure_logging(Config.LOG_LEVEL, Config.LOG_FILE)
    try:
        application = create_app()
        logger.info("Starting court data service...")
        application.run(debug=False, host='0.0.0.0', port=int(os.getenv('PORT', '5000')))
    except Exception as e:
        logger.error(f"Failed to start application: {e}")
        raise
