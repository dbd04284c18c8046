from commerce_api.utils.errors import ApiError, ValidationError, NotFoundError, ConflictError, UpstreamError
from commerce_api.utils.decorators import v1_endpoint, legacy_endpoint
from commerce_api.utils.helpers import round_money, to_float

__all__ = [
    'ApiError', 'ValidationError', 'NotFoundError', 'ConflictError', 'UpstreamError',
    'v1_endpoint', 'legacy_endpoint', 'round_money', 'to_float'
]
