import logging
from typing import Optional

from config import DatabaseSettings
from consolidation import consolidate
from contact_store import ContactRepository, lock_keys
from db_models import ConsolidatedView, CreateInstruction, Identity, LinkPrecedence
from db_setup import init_db, open_repository
from errors import ErrorKind, IdentityResolutionError

logger = logging.getLogger(__name__)


def execute_instruction(repository: ContactRepository, instruction: Optional[CreateInstruction]) -> Optional[int]:
    if instruction is None:
        return None
    if instruction.linkPrecedence == LinkPrecedence.PRIMARY:
        return repository.insert_primary(instruction.email, instruction.phoneNumber)
    return repository.insert_secondary(instruction.email, instruction.phoneNumber, instruction.linkedId)


class IdentityService:
    """Resolves an incoming identity to the consolidated view of its cluster."""

    def __init__(self, settings: DatabaseSettings):
        self.settings = settings

    def setup(self):
        init_db(self.settings)

    def identify(self, identity: Identity) -> ConsolidatedView:
        if identity.is_empty:
            raise IdentityResolutionError(ErrorKind.MALFORMED_REQUEST)

        with open_repository(self.settings, lock_keys(identity)) as repository:
            matches = repository.find_contacts(identity.email, identity.phoneNumber)
            consolidation = consolidate(identity, matches)
            created_id = execute_instruction(repository, consolidation.instruction)

        return consolidation.complete(created_id)
