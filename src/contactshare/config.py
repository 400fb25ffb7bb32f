"""
Configuration for contactshare exchange sessions
Defaults overridable from CONTACTSHARE_* environment variables
"""

import os
import logging
from typing import Optional, Mapping
from dataclasses import dataclass, field

from .reliability.timeout_manager import TimeoutConfig

logger = logging.getLogger(__name__)

ENV_PREFIX = "CONTACTSHARE_"

# Topic published when an incoming contact was just completed elsewhere
INCOMING_CONTACT_TOPIC = "incoming_contact"


@dataclass
class ExchangeConfig:
    """Exchange session configuration"""
    cancellation_topic: str = INCOMING_CONTACT_TOPIC
    worker_threads: int = 2
    timeouts: TimeoutConfig = field(default_factory=TimeoutConfig)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ExchangeConfig":
        """Build configuration from environment variables"""
        env = os.environ if environ is None else environ
        config = cls()

        topic = env.get(f"{ENV_PREFIX}CANCELLATION_TOPIC")
        if topic:
            config.cancellation_topic = topic

        workers = env.get(f"{ENV_PREFIX}WORKER_THREADS")
        if workers is not None:
            config.worker_threads = _parse_positive(workers, int, "WORKER_THREADS", config.worker_threads)

        timeout_fields = {
            "CONNECT_TIMEOUT": "registry_connect",
            "READ_TIMEOUT": "registry_read",
            "RELEASE_TIMEOUT": "registry_release",
            "ENCODE_TIMEOUT": "payload_encode",
            "SHARE_TIMEOUT": "payload_share",
        }
        for env_name, attr in timeout_fields.items():
            value = env.get(f"{ENV_PREFIX}{env_name}")
            if value is not None:
                current = getattr(config.timeouts, attr)
                setattr(config.timeouts, attr, _parse_positive(value, float, env_name, current))

        return config


def _parse_positive(value: str, cast, name: str, fallback):
    try:
        parsed = cast(value)
    except ValueError:
        logger.warning(f"Ignoring invalid {ENV_PREFIX}{name}={value!r}")
        return fallback
    if parsed <= 0:
        logger.warning(f"Ignoring non-positive {ENV_PREFIX}{name}={value!r}")
        return fallback
    return parsed
