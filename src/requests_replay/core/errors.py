class PersisterError(Exception):
    """Base class of all errors raised by the persister."""


class PreconditionError(PersisterError):
    """Raised when an operation is called with arguments it cannot accept."""


class PolicyError(PersisterError):
    def __init__(self, method: str, url: str, status_code: int) -> None:
        super().__init__(
            f"Cannot persist response for [{method}] {url} because the status "
            f"code was {status_code} and `record_failed_requests` is `False`"
        )
        self.method = method
        self.url = url
        self.status_code = status_code


class ReplayMissError(PersisterError):
    def __init__(self, method: str, url: str, recording_id: str) -> None:
        super().__init__(
            f"No recorded entry for [{method}] {url} in recording {recording_id}"
        )
        self.method = method
        self.url = url
        self.recording_id = recording_id
