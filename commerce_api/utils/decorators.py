from functools import wraps
from commerce_api import db
from commerce_api.utils.errors import ApiError
from commerce_api.utils.responses import err, legacy_err
import logging

logger = logging.getLogger(__name__)


def v1_endpoint(failure_title, failure_message="Unexpected error."):
    """
    Décorateur des routes v1:
    - ApiError -> {ok: false, title, message, ...} avec son statut
    - toute autre exception -> 500 après rollback de la session
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            try:
                return fn(*args, **kwargs)
            except ApiError as e:
                db.session.rollback()
                if e.status >= 500:
                    logger.error(f"{fn.__name__}: {e.title} - {e.message}")
                return err(e.status, e.title, e.message, **e.extra)
            except Exception as e:
                db.session.rollback()
                logger.exception(f"{fn.__name__} failed: {e}")
                return err(500, failure_title, failure_message, error=str(e))
        return wrapper
    return decorator


def legacy_endpoint(failure_message):
    """
    Décorateur des anciennes routes (/api/...): {error: message}
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            try:
                return fn(*args, **kwargs)
            except ApiError as e:
                db.session.rollback()
                if e.status >= 500:
                    logger.error(f"{fn.__name__}: {e.message}")
                return legacy_err(e.message, e.status, **e.extra)
            except Exception as e:
                db.session.rollback()
                logger.exception(f"{fn.__name__} failed: {e}")
                return legacy_err(failure_message, 500, details=str(e))
        return wrapper
    return decorator
