import os
from dataclasses import dataclass

VERSION = "0.1.0"
RECORD_FAILED_REQUESTS_ENV = "REQUESTS_REPLAY_RECORD_FAILED_REQUESTS"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class PersisterConfig:
    record_failed_requests: bool = False
    creator_name: str = "requests-replay"
    creator_version: str = VERSION

    @classmethod
    def from_env(cls) -> "PersisterConfig":
        """Build a config, letting the environment toggle failed-request recording."""
        value = os.environ.get(RECORD_FAILED_REQUESTS_ENV, "")
        return cls(record_failed_requests=value.strip().lower() in _TRUTHY)
