"""
Identity consolidation.

Turns the contacts matched for an incoming identity into a consolidated view
of the cluster, plus an optional instruction to create a new contact:

- nothing matched: create a primary contact for the identity
- something matched: fold the matched rows into one view anchored on the
  earliest primary, and create a secondary contact only when the identity
  carries neither a known email nor a known phone number

Clusters that a single request bridges (one matched by email, another by
phone) are not merged; the view is anchored on the earliest primary and the
later primary keeps its precedence.
"""
import logging
from typing import Callable, Iterable, List, Optional, TypeVar

from db_models import Contact, ConsolidatedView, CreateInstruction, Identity, LinkPrecedence

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _is_set(value) -> bool:
    return value is not None


def unique_ordered(values: Iterable[Optional[T]], is_present: Callable[[Optional[T]], bool] = _is_set) -> List[T]:
    seen = set()
    unique = []
    for value in values:
        if not is_present(value) or value in seen:
            continue
        seen.add(value)
        unique.append(value)
    return unique


def unique_emails(contacts: Iterable[Contact]) -> List[str]:
    return unique_ordered((contact.email for contact in contacts), is_present=bool)


def unique_phone_numbers(contacts: Iterable[Contact]) -> List[int]:
    return unique_ordered(contact.phoneNumber for contact in contacts)


def secondary_contact_ids(contacts: Iterable[Contact]) -> List[int]:
    return unique_ordered(contact.id for contact in contacts if not contact.is_primary)


def resolve_primary_id(matches: List[Contact]) -> int:
    """Pick the anchor primary for a non-empty match set.

    Every row resolves to its own primary (itself, or the contact it links
    to). Ids are generated in creation order, so the smallest resolved id is
    the earliest-created primary.
    """
    if not matches:
        raise ValueError("cannot resolve a primary contact from an empty match set")
    return min(contact.primaryContactId for contact in matches)


def is_novel(identity: Identity, emails: List[str], phone_numbers: List[int]) -> bool:
    # An unset attribute is never "already known", mirroring a plain membership test.
    return identity.email not in emails and identity.phoneNumber not in phone_numbers


class Consolidation:
    """Outcome of :func:`consolidate`.

    ``view`` is ``None`` only while a primary contact still has to be created;
    call :meth:`complete` with the id returned by the store (or ``None`` when
    there was no instruction) to get the final view.
    """

    def __init__(self, identity: Identity, view: Optional[ConsolidatedView], instruction: Optional[CreateInstruction]):
        self.identity = identity
        self.view = view
        self.instruction = instruction

    def complete(self, created_id: Optional[int] = None) -> ConsolidatedView:
        if self.instruction is None:
            return self.view

        if created_id is None:
            raise ValueError("a created contact id is required to complete this consolidation")

        if self.instruction.linkPrecedence == LinkPrecedence.PRIMARY:
            return ConsolidatedView(
                primaryContactId=created_id,
                emails=[self.identity.email] if self.identity.email else [],
                phoneNumbers=[self.identity.phoneNumber] if self.identity.phoneNumber is not None else [],
                secondaryContactIds=[],
            )

        return self.view.model_copy(
            update={"secondaryContactIds": self.view.secondaryContactIds + [created_id]}
        )


def consolidate(identity: Identity, matches: List[Contact]) -> Consolidation:
    if not matches:
        logger.debug("No contacts matched, new primary required")
        instruction = CreateInstruction(
            linkPrecedence=LinkPrecedence.PRIMARY,
            email=identity.email,
            phoneNumber=identity.phoneNumber,
        )
        return Consolidation(identity, None, instruction)

    primary_id = resolve_primary_id(matches)
    view = ConsolidatedView(
        primaryContactId=primary_id,
        emails=unique_emails(matches),
        phoneNumbers=unique_phone_numbers(matches),
        secondaryContactIds=secondary_contact_ids(matches),
    )

    instruction = None
    if is_novel(identity, view.emails, view.phoneNumbers):
        instruction = CreateInstruction(
            linkPrecedence=LinkPrecedence.SECONDARY,
            email=identity.email,
            phoneNumber=identity.phoneNumber,
            linkedId=primary_id,
        )

    logger.debug(
        "Consolidated %d matched contacts under primary %s (new secondary: %s)",
        len(matches), primary_id, instruction is not None,
    )
    return Consolidation(identity, view, instruction)
