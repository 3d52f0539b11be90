class BaseType:

    def __init__(self):
        raise Exception("Cannot instantiate")

    @staticmethod
    def validate():
        raise NotImplementedError("Subclasses should implement this!")


class IntegerType(BaseType):

    @staticmethod
    def validate(value):
        # bool is an int subclass but never a valid index on the wire
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError("Value must be an integer.")


class StringType(BaseType):

    @staticmethod
    def validate(value):
        if not isinstance(value, str):
            raise TypeError("Value must be a string.")


class BooleanType(BaseType):

    @staticmethod
    def validate(value):
        if not isinstance(value, bool):
            raise TypeError("Value must be a boolean.")


BASE_MESSAGE = {
    "type": StringType,
}


def validate_contract(contract, data):
    if not isinstance(data, dict):
        raise TypeError("Message must be a JSON object.")
    for key, value in contract.items():
        if key not in data:
            raise KeyError(f"Missing key: {key}")
        if isinstance(value, dict):
            validate_contract(value, data[key])
        else:
            value.validate(data[key])


def validate_contract_with_error_response(contract, data):
    """
    Validate a contract and return an error response if validation fails.

    Args:
        contract: The contract schema to validate against
        data: The data to validate

    Returns:
        tuple: (is_valid: bool, error_response: dict or None)
            - If valid: (True, None)
            - If invalid: (False, error_response_dict with status and error fields)
    """
    try:
        validate_contract(contract, data)
        return (True, None)
    except KeyError as e:
        return (
            False,
            {
                "status": "error",
                "error": f"Missing required field: {str(e)}",
            },
        )
    except TypeError as e:
        return (
            False,
            {
                "status": "error",
                "error": f"Invalid field type: {str(e)}",
            },
        )
