"""
Application Flask - Commerce API
API REST pour les paniers, commandes, factures et paiements B2B
"""

from flask import Flask, request
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from commerce_api.config import config
import logging
import os

db = SQLAlchemy()
migrate = Migrate()


def get_rate_limit_key():
    """
    Retourne la clé pour le rate limiting.
    - 'preflight' pour les requêtes OPTIONS (CORS preflight)
    - IP de l'appelant sinon
    """
    if request.method == 'OPTIONS':
        return 'preflight'

    ip = get_remote_address()
    if not ip:
        ip = request.headers.get('X-Forwarded-For', request.headers.get('X-Real-IP', '127.0.0.1'))
        if ',' in ip:
            ip = ip.split(',')[0].strip()

    return ip or '127.0.0.1'


limiter = Limiter(
    key_func=get_rate_limit_key,
    default_limits=["2000 per day", "300 per hour"],
    storage_uri=os.environ.get('REDIS_URL', 'memory://')
)

logger = logging.getLogger(__name__)


def create_app(config_name='default', stock_service=None, catalogue_service=None):
    """
    Factory function pour créer l'application Flask

    Args:
        config_name: Nom de la configuration (development, production, testing)
        stock_service: Client du service de réservation de stock (injecté par
            les tests; construit depuis la configuration sinon)
        catalogue_service: Client du catalogue produits (même principe)

    Returns:
        Flask app configurée
    """
    app = Flask(__name__)
    app.config.from_object(config[config_name])

    logging.basicConfig(
        level=getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Vérifications au démarrage en production
    if config_name == 'production':
        config[config_name].init_app(app)

    # Initialisation des extensions
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    cors_origins = app.config.get('CORS_ORIGINS', ['http://localhost:3000'])
    CORS(app, resources={
        r"/api/*": {
            "origins": cors_origins,
            "methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            "allow_headers": app.config.get('CORS_ALLOW_HEADERS', ["Content-Type", "Authorization"]),
            "supports_credentials": app.config.get('CORS_SUPPORTS_CREDENTIALS', True)
        }
    })

    # Collaborateur externe: réservation de stock promotionnel
    if stock_service is None:
        from commerce_api.services.stock_service import StockReservationService
        stock_service = StockReservationService(
            base_url=app.config['STOCK_SERVICE_URL'],
            timeout=app.config['STOCK_SERVICE_TIMEOUT']
        )
    app.extensions['stock_service'] = stock_service

    # Collaborateur externe: catalogue produits
    if catalogue_service is None:
        from commerce_api.services.catalogue_service import CatalogueService
        catalogue_service = CatalogueService(
            base_url=app.config['CATALOGUE_SERVICE_URL'],
            timeout=app.config['STOCK_SERVICE_TIMEOUT']
        )
    app.extensions['catalogue_service'] = catalogue_service

    # Headers de sécurité
    @app.after_request
    def add_security_headers(response):
        if config_name == 'production':
            response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'

        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'

        return response

    # ==================== BLUEPRINTS ====================

    # Routes v1 (enveloppe {ok, data})
    from commerce_api.routes.v1 import v1_bp
    app.register_blueprint(v1_bp, url_prefix='/api/v1')

    # Routes historiques (enveloppe {message|error})
    from commerce_api.routes.checkout import checkout_bp
    app.register_blueprint(checkout_bp, url_prefix='/api')

    from commerce_api.routes.accounting import accounting_bp
    app.register_blueprint(accounting_bp, url_prefix='/api/accounting')

    from commerce_api.routes.transactions import transactions_bp
    app.register_blueprint(transactions_bp, url_prefix='/api/transactions')

    # ==================== ERROR HANDLERS ====================

    @app.errorhandler(400)
    def bad_request(error):
        return {'ok': False, 'title': 'Bad Request', 'message': 'Invalid request.'}, 400

    @app.errorhandler(404)
    def not_found(error):
        return {'ok': False, 'title': 'Not Found', 'message': 'Resource not found.'}, 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return {'ok': False, 'title': 'Method Not Allowed', 'message': 'Method not allowed.'}, 405

    @app.errorhandler(429)
    def rate_limit_exceeded(error):
        return {'ok': False, 'title': 'Rate Limited', 'message': 'Too many requests. Try again later.'}, 429

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"Erreur interne: {str(error)}")
        return {'ok': False, 'title': 'Server Error', 'message': 'Internal server error.'}, 500

    # ==================== HEALTH CHECK ====================

    @app.route('/api/health')
    def health_check():
        """Endpoint de vérification de santé"""
        return {'status': 'healthy', 'version': '1.0.0'}

    # Créer les tables (dev uniquement)
    if os.environ.get('AUTO_CREATE_DB', 'false').lower() == 'true':
        with app.app_context():
            db.create_all()

    logger.info(f"Application démarrée en mode {config_name}")

    return app
