from flask import Flask, jsonify
from flask_cors import CORS
from datetime import datetime
import logging

from config import FLASK_CONFIG, PORTAL_CONFIG
from db.supabase_client import default_client_factory
from errors import PortalError

logger = logging.getLogger(__name__)


def create_app(config=None, client_factory=None):
    """
    Build the portal application

    Args:
        config: extra Flask config values
        client_factory: callable returning a Supabase client, one per request

    Returns:
        Flask: configured application
    """
    app = Flask(__name__)
    CORS(app)

    app.config.update(
        PORTAL_HOD_EMAIL=PORTAL_CONFIG.get('hod_email'),
        PORTAL_APP_NAME=PORTAL_CONFIG.get('app_name'),
        SUPABASE_CLIENT_FACTORY=client_factory or default_client_factory,
    )
    if config:
        app.config.update(config)

    from apis.auth_api import auth_bp, close_portal_session
    from apis.pages_api import pages
    from apis.records_api import records
    from apis.requests_api import faculty
    from apis.hod_api import hod

    app.register_blueprint(auth_bp)
    app.register_blueprint(pages)
    app.register_blueprint(records)
    app.register_blueprint(faculty)
    app.register_blueprint(hod)

    app.teardown_request(close_portal_session)

    @app.errorhandler(PortalError)
    def handle_portal_error(e):
        return jsonify(e.to_dict()), e.status_code

    @app.route('/api/health', methods=['GET'])
    def health_check():
        """Basic health check"""
        return jsonify({
            'status': 'healthy',
            'message': f"Welcome to {app.config.get('PORTAL_APP_NAME')} API",
            'timestamp': datetime.now().isoformat()
        })

    return app


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    create_app().run(
        host=FLASK_CONFIG.get('host'),
        port=FLASK_CONFIG.get('port'),
        debug=FLASK_CONFIG.get('debug'),
    )
