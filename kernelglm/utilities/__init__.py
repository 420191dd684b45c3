from .hashing import compute_dataset_signature, hash_payload
from .log_config import configure_logging, silence_logging
from .run_context import RunContext, create_run_context
from .serialization import json_ready

__all__ = [
    "compute_dataset_signature",
    "hash_payload",
    "configure_logging",
    "silence_logging",
    "RunContext",
    "create_run_context",
    "json_ready",
]
