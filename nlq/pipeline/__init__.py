"""Translation pipeline: deterministic fallback SQL and the orchestrator."""

from .fallback import EMPTY_CATALOG_SQL, FallbackGenerator
from .orchestrator import Deadline, NLQService, Provenance, SQLCandidate

__all__ = [
    "EMPTY_CATALOG_SQL",
    "FallbackGenerator",
    "Deadline",
    "NLQService",
    "Provenance",
    "SQLCandidate",
]
