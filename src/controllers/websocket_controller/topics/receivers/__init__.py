from functools import wraps
from tools.logger import *
from tools.contract_validation import validate_contract_with_error_response


def topic(name):
    """
    Decorator to register a topic handler.
    """

    def wrapper(init):
        log_debug(f"Registering topic: {name}")
        return init

    return wrapper


def validate_message(contract, name):
    """
    Decorator to validate incoming messages against a contract schema.

    Messages that fail validation are protocol violations: they are logged
    and dropped, and the wrapped handler is not called.

    Args:
        contract: The contract schema to validate against
        name: The message type (used in the diagnostic)

    Returns:
        Decorator function
    """

    def decorator(func):
        @wraps(func)
        async def wrapper(message, *args, **kwargs):
            is_valid, error_response = validate_contract_with_error_response(
                contract, message
            )
            if not is_valid:
                log_warning(f"Dropping invalid {name} message: {error_response['error']}")
                return None

            return await func(message, *args, **kwargs)

        return wrapper

    return decorator
