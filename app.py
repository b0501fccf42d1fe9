import os

from dotenv import load_dotenv
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

load_dotenv()

from models import db
from services.ai_gateway import build_chat_backend
from services.ai_routes import ai_create_event, ai_status
from services.event_routes import event_detail, list_or_create_events
from services.event_store import EventStore
from services.user_routes import current_user_info, login, regenerate_token, register


def _load_config(app):
    app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('DATABASE_URL', 'sqlite:///scheduler.db')
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')
    app.config['AUTH_TOKEN_MAX_AGE'] = int(os.environ.get('AUTH_TOKEN_MAX_AGE', 7 * 24 * 60 * 60))
    app.config['AI_PROVIDER'] = os.environ.get('AI_PROVIDER', 'openai')  # openai | ollama
    app.config['OPENAI_API_KEY'] = os.environ.get('OPENAI_API_KEY')
    app.config['OPENAI_MODEL'] = os.environ.get('OPENAI_MODEL', 'gpt-4o-mini')
    app.config['OLLAMA_ENDPOINT'] = os.environ.get('OLLAMA_ENDPOINT', 'http://localhost:11434')
    app.config['OLLAMA_MODEL'] = os.environ.get('OLLAMA_MODEL', 'llama3')
    app.config['AI_TIMEOUT_SECONDS'] = float(os.environ.get('AI_TIMEOUT_SECONDS', 30))
    app.config['AI_CONTEXT_DAYS'] = int(os.environ.get('AI_CONTEXT_DAYS', 30))
    app.config['LOG_LEVEL'] = os.environ.get('LOG_LEVEL', 'INFO')


def _register_routes(app):
    app.add_url_rule('/api/auth/register', view_func=register, methods=['POST'])
    app.add_url_rule('/api/auth/login', view_func=login, methods=['POST'])
    app.add_url_rule('/api/user/me', view_func=current_user_info, methods=['GET'])
    app.add_url_rule('/api/user/regenerate-token', view_func=regenerate_token, methods=['POST'])
    app.add_url_rule('/api/events', view_func=list_or_create_events, methods=['GET', 'POST'])
    app.add_url_rule('/api/events/ai-create', view_func=ai_create_event, methods=['POST'])
    app.add_url_rule('/api/events/<event_id>', view_func=event_detail, methods=['GET', 'PATCH', 'DELETE'])
    app.add_url_rule('/api/ai/status', view_func=ai_status, methods=['GET'])


def _register_error_handlers(app):
    @app.errorhandler(HTTPException)
    def handle_http_error(exc):
        return jsonify({'success': False, 'error': exc.description}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc):
        db.session.rollback()
        app.logger.error(f"Unhandled error: {exc}", exc_info=exc)
        return jsonify({'success': False, 'error': 'Internal server error'}), 500


def create_app(config=None):
    """
    Build the Flask app. `config` overrides environment settings; a CHAT_BACKEND
    entry replaces the backend selected by AI_PROVIDER.
    """
    app = Flask(__name__)
    _load_config(app)
    if config:
        app.config.update(config)
    app.logger.setLevel(app.config['LOG_LEVEL'])

    db.init_app(app)
    app.extensions['event_store'] = EventStore()
    app.extensions['chat_backend'] = app.config.get('CHAT_BACKEND') or build_chat_backend(app.config)

    _register_routes(app)
    _register_error_handlers(app)

    with app.app_context():
        db.create_all()
    return app


if __name__ == '__main__':
    debug_enabled = os.environ.get('FLASK_DEBUG', '').lower() in ('1', 'true', 'yes', 'on')
    create_app().run(debug=debug_enabled)
