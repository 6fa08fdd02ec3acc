"""Client context - the explicitly constructed handles the app runs against."""

import logging
from dataclasses import dataclass

from .adapters.firebase_auth import FirebaseAuthAdapter
from .adapters.firestore_store import FirestoreDocumentStore
from .adapters.local_storage import FileLocalStorage
from .config import Config, load_config
from .ports import DocumentStore, IdentityProvider, LocalCache

logger = logging.getLogger(__name__)


@dataclass
class ClientContext:
    """Identity, remote documents and device storage for one app instance."""

    config: Config
    identity: IdentityProvider
    documents: DocumentStore
    local_cache: LocalCache

    def close(self) -> None:
        """Release network resources."""
        self.documents.close()
        self.identity.close()


def build_context(config: Config | None = None) -> ClientContext:
    """Wire the Firebase-backed adapters from configuration."""
    config = config or load_config()

    if not config.firebase_api_key or not config.firebase_project_id:
        logger.info("Firebase is not configured; set FIREBASE_API_KEY and FIREBASE_PROJECT_ID")

    identity = FirebaseAuthAdapter(config)
    documents = FirestoreDocumentStore(
        project_id=config.firebase_project_id,
        app_id=config.app_id,
        token_source=identity.id_token,
    )
    return ClientContext(
        config=config,
        identity=identity,
        documents=documents,
        local_cache=FileLocalStorage(config.local_storage_path),
    )
