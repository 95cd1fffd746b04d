"""
Error handling helpers and decorators for the Flask API
Converts raffle errors into JSON error responses
"""

import logging
from functools import wraps

from flask import jsonify

from vrf_raffle.errors import RaffleError

logger = logging.getLogger(__name__)


def api_error_handler(func):
    """
    Decorator for API endpoints that turns exceptions into JSON error responses

    Usage:
        @app.route('/api/raffle/enter', methods=['POST'])
        @api_error_handler
        def enter():
            raffle.enter_raffle(...)
            return json_success()
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except RaffleError as e:
            logger.warning(f"Raffle rejected {func.__name__}: {e}")
            return json_error(e.error_name, 400, details=e.details())
        except ValueError as e:
            logger.warning(f"Validation error in {func.__name__}: {e}")
            return json_error(str(e), 400)
        except PermissionError as e:
            logger.warning(f"Permission denied in {func.__name__}: {e}")
            return json_error('Permission denied', 403)
        except LookupError as e:
            logger.warning(f"Not found in {func.__name__}: {e}")
            return json_error('Resource not found', 404)
        except Exception as e:
            logger.error(f"Unexpected error in {func.__name__}: {e}", exc_info=True)
            return json_error('Internal server error', 500)
    return wrapper


def json_success(data=None, message=None, **kwargs):
    """
    Create standardized success JSON response

    Args:
        data: Optional data to include
        message: Optional success message
        **kwargs: Additional fields to include

    Returns:
        JSON response with success=True
    """
    response = {'success': True}
    if data is not None:
        response['data'] = data
    if message:
        response['message'] = message
    response.update(kwargs)
    return jsonify(response)


def json_error(error, status_code=400, **kwargs):
    """
    Create standardized error JSON response

    Returns:
        (JSON response with success=False, status code)
    """
    response = {'success': False, 'error': str(error)}
    response.update(kwargs)
    return jsonify(response), status_code


def validate_required_fields(data, required_fields):
    """
    Validate that all required fields are present in data dict

    Returns:
        tuple: (is_valid: bool, missing_fields: list)
    """
    missing = [field for field in required_fields if data.get(field) in (None, '')]
    return (len(missing) == 0, missing)


def parse_int(value, field):
    """Parse an integer request field, raising ValueError with the field name"""
    if isinstance(value, bool):
        raise ValueError(f"{field} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field} must be an integer")


class log_exceptions:
    """
    Context manager that logs exceptions with custom context and re-raises them

    Usage:
        with log_exceptions("fulfilling request", request_id=7):
            coordinator.fulfill_random_words(7, raffle)
    """
    def __init__(self, operation, **context):
        self.operation = operation
        self.context = context

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            context_str = ', '.join(f"{k}={v}" for k, v in self.context.items())
            logger.error(f"Error during {self.operation} [{context_str}]: {exc_val}", exc_info=True)
        return False  # Don't suppress exception
