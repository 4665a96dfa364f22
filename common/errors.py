"""Error types shared by the intake Lambdas.

Each error carries the HTTP status and the short label the handlers put in
the response body, so a handler only needs one ``except IntakeError``.
"""


class IntakeError(Exception):
    status_code = 500
    label = "Processing failed"

    def __init__(self, message, *, label=None):
        super().__init__(message)
        self.message = message
        if label:
            self.label = label


class ValidationError(IntakeError):
    status_code = 400
    label = "Contact method required"


class ConfigurationError(IntakeError):
    label = "Service not configured"


class NotionError(IntakeError):
    """Failure talking to the Notion API (transport or non-2xx response)."""

    label = "Failed to save to Notion"

    def __init__(self, message, upstream_status=None):
        super().__init__(message)
        self.upstream_status = upstream_status


class SaveEndpointError(IntakeError):
    label = "Webhook processing failed"
