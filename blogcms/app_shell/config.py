import logging
import os
from pathlib import Path

from blogcms.core.ports.store import DocumentStorePort
from blogcms.core.ports.time import TimePort
from blogcms.rules.loader import load_rules
from blogcms.rules.models import Rules

logger = logging.getLogger(__name__)

RULES_PATH_ENV = "BLOGCMS_RULES_PATH"
STORE_BACKEND_ENV = "BLOGCMS_STORE_BACKEND"
PROJECT_ENV = "GOOGLE_CLOUD_PROJECT"

DEFAULT_RULES_PATH = "rules.yaml"
STORE_BACKENDS = ("memory", "firestore")


def resolve_rules_path(path: str | None = None) -> Path:
    return Path(path or os.environ.get(RULES_PATH_ENV, DEFAULT_RULES_PATH))


def load_config(path: str | None = None) -> Rules:
    """
    Load rules and apply environment overrides.

    BLOGCMS_STORE_BACKEND overrides store.backend; GOOGLE_CLOUD_PROJECT
    fills store.project_id when the file leaves it unset.
    """
    rules = load_rules(resolve_rules_path(path))

    backend = os.environ.get(STORE_BACKEND_ENV)
    if backend:
        rules.store.backend = backend
    if rules.store.project_id is None and os.environ.get(PROJECT_ENV):
        rules.store.project_id = os.environ[PROJECT_ENV]

    if rules.store.backend not in STORE_BACKENDS:
        raise ValueError(
            f"Unknown store backend '{rules.store.backend}'. Expected one of {STORE_BACKENDS}"
        )
    return rules


def build_store(rules: Rules, clock: TimePort | None = None) -> DocumentStorePort:
    """Create the document store adapter selected by rules.store.backend."""
    store_rules = rules.store
    if store_rules.backend == "firestore":
        # Optional dependency (extra: firestore)
        from blogcms.adapters.firestore_store import FirestoreDocumentStore

        logger.info("Using Firestore store (project=%s)", store_rules.project_id)
        return FirestoreDocumentStore(
            project=store_rules.project_id,
            max_attempts=store_rules.transaction_max_attempts,
        )

    from blogcms.adapters.memory_store import InMemoryDocumentStore

    logger.info("Using in-memory store")
    return InMemoryDocumentStore(clock, max_attempts=store_rules.transaction_max_attempts)
