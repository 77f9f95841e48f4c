class CallValidationError(Exception):
    def __init__(self, errors: dict[str, list[str]]):
        self.errors = errors
        self.message = "Invalid input"
        super().__init__(f"Invalid input: {', '.join(sorted(errors))}")


class InvalidTransitionError(Exception):
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class CallNotFoundError(Exception):
    def __init__(self, call_id: str):
        self.call_id = call_id
        self.message = "Call not found"
        super().__init__(f"Call not found: {call_id}")


class CallAlreadyDispatchedError(Exception):
    def __init__(self, call_id: str, provider_id: str | None = None):
        self.call_id = call_id
        self.provider_id = provider_id
        self.message = "Call already dispatched"
        super().__init__(f"Call {call_id} already dispatched (provider_id={provider_id})")


class ProviderMismatchError(Exception):
    def __init__(self, call_id: str):
        self.call_id = call_id
        self.message = "providerId does not match the call"
        super().__init__(f"providerId mismatch for call {call_id}")


class UnauthorizedError(Exception):
    def __init__(self, message: str = "Unauthorized"):
        self.message = message
        super().__init__(message)


class StoreUnavailableError(Exception):
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ProviderTransportError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)
