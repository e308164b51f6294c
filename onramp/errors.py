class OnrampError(Exception):
    """Base application error carrying an HTTP status and optional payload."""

    status_code = 500
    error = "internal_error"

    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload or {}

    def to_dict(self):
        return {"error": self.error, "message": self.message, **self.payload}


class ValidationError(OnrampError):
    """Malformed or out-of-range input. Lists every violated constraint."""

    status_code = 400
    error = "validation_error"

    def __init__(self, violations, message="Invalid request"):
        self.violations = list(violations)
        super().__init__(message, payload={"violations": self.violations})


class NotFoundError(OnrampError):
    status_code = 404
    error = "not_found"


class RateUnavailableError(OnrampError):
    status_code = 404
    error = "rate_unavailable"

    def __init__(self, symbol):
        self.symbol = symbol
        super().__init__(f"No exchange rate available for {symbol}", payload={"tokenSymbol": symbol})


class InvalidStateTransition(OnrampError):
    status_code = 409
    error = "invalid_state_transition"


class SessionExpiredError(OnrampError):
    status_code = 410
    error = "payment_session_expired"


class WebhookSignatureError(OnrampError):
    status_code = 401
    error = "invalid_signature"


class FeatureDisabledError(OnrampError):
    status_code = 403
    error = "feature_disabled"


class UpstreamError(OnrampError):
    """Price feed or payment gateway call failed."""

    status_code = 500
    error = "upstream_error"

    def __init__(self, message, service=None):
        self.service = service
        super().__init__(message, payload={"service": service} if service else None)


class TransferError(OnrampError):
    """On-chain transfer failed. Recorded on the transaction, never surfaced to HTTP."""

    error = "transfer_failed"
