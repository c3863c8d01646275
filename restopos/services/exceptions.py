"""
Service-level exceptions, translated to HTTP responses in restopos.utils.responses
"""


class RecordNotFound(LookupError):
    """A referenced table, product, transaction, user or file does not exist"""

    def __init__(self, resource: str):
        self.resource = resource
        super().__init__(f"{resource} not found")


class ValidationFailed(ValueError):
    """Input rejected before any write was made"""

    def __init__(self, message: str, error_code: str = "validation_failed"):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class TableCloseError(Exception):
    """Closing a table failed at a specific step"""

    STEP_MESSAGES = {
        "create_transaction": "Transaction could not be created",
        "clear_items": "Table items could not be cleared",
        "release_table": "Table status could not be updated",
    }

    def __init__(self, step: str, reason: str):
        self.step = step
        self.reason = reason
        super().__init__(f"{self.STEP_MESSAGES.get(step, step)}: {reason}")
