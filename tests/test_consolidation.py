import pytest

from consolidation import (
    consolidate,
    is_novel,
    resolve_primary_id,
    secondary_contact_ids,
    unique_emails,
    unique_ordered,
    unique_phone_numbers,
)
from db_models import Contact, Identity, LinkPrecedence


def primary(contact_id, email=None, phone=None):
    return Contact(id=contact_id, email=email, phoneNumber=phone, linkPrecedence=LinkPrecedence.PRIMARY)


def secondary(contact_id, linked_id, email=None, phone=None):
    return Contact(
        id=contact_id, email=email, phoneNumber=phone,
        linkPrecedence=LinkPrecedence.SECONDARY, linkedId=linked_id,
    )


def test_unique_ordered_keeps_first_seen_order():
    assert unique_ordered(["a@x.com", None, "a@x.com", "b@x.com"]) == ["a@x.com", "b@x.com"]


def test_unique_ordered_empty_input():
    assert unique_ordered([]) == []
    assert unique_ordered(iter([None, None])) == []


def test_unique_ordered_custom_presence():
    assert unique_ordered([0, 3, 0, 5], is_present=bool) == [3, 5]
    assert unique_ordered([0, 3, 0, 5]) == [0, 3, 5]


def test_unique_emails_skips_missing_values():
    contacts = [
        primary(1, email="a@x.com", phone=1),
        secondary(2, 1, phone=2),
        secondary(3, 1, email="a@x.com"),
        secondary(4, 1, email="b@x.com"),
    ]

    assert unique_emails(contacts) == ["a@x.com", "b@x.com"]
    assert unique_phone_numbers(contacts) == [1, 2]
    assert secondary_contact_ids(contacts) == [2, 3, 4]


def test_resolve_primary_id_uses_own_id_for_primary_rows():
    assert resolve_primary_id([primary(4, email="a@x.com")]) == 4


def test_resolve_primary_id_follows_secondary_link():
    assert resolve_primary_id([secondary(9, 3, email="a@x.com")]) == 3


def test_resolve_primary_id_picks_earliest_primary():
    matches = [primary(5, email="a@x.com"), secondary(7, 2, phone=555)]

    assert resolve_primary_id(matches) == 2


def test_resolve_primary_id_rejects_empty_matches():
    with pytest.raises(ValueError):
        resolve_primary_id([])


def test_is_novel_requires_both_attributes_unknown():
    assert is_novel(Identity(email="c@x.com", phoneNumber=9), ["a@x.com"], [555])
    assert not is_novel(Identity(email="a@x.com", phoneNumber=9), ["a@x.com"], [555])
    assert not is_novel(Identity(email="c@x.com", phoneNumber=555), ["a@x.com"], [555])


def test_no_matches_requests_new_primary():
    identity = Identity(email="lorraine@hillvalley.edu", phoneNumber=123456)

    result = consolidate(identity, [])

    assert result.view is None
    assert result.instruction.linkPrecedence == LinkPrecedence.PRIMARY
    assert result.instruction.linkedId is None

    view = result.complete(1)
    assert view.primaryContactId == 1
    assert view.emails == ["lorraine@hillvalley.edu"]
    assert view.phoneNumbers == [123456]
    assert view.secondaryContactIds == []


def test_new_primary_view_omits_missing_attributes():
    view = consolidate(Identity(phoneNumber=555), []).complete(3)

    assert view.emails == []
    assert view.phoneNumbers == [555]


def test_completing_an_instruction_requires_created_id():
    with pytest.raises(ValueError):
        consolidate(Identity(email="a@x.com"), []).complete()


def test_exact_duplicate_emits_no_instruction():
    identity = Identity(email="a@x.com", phoneNumber=555)

    result = consolidate(identity, [primary(1, email="a@x.com", phone=555)])

    assert result.instruction is None
    view = result.complete()
    assert view.primaryContactId == 1
    assert view.emails == ["a@x.com"]
    assert view.phoneNumbers == [555]
    assert view.secondaryContactIds == []


def test_known_phone_with_new_email_is_not_novel():
    identity = Identity(email="new@x.com", phoneNumber=555)

    result = consolidate(identity, [primary(1, email="a@x.com", phone=555)])

    assert result.instruction is None
    assert result.complete().emails == ["a@x.com"]


def test_novel_identity_links_new_secondary_to_primary():
    identity = Identity(email="c@x.com", phoneNumber=9)
    matches = [primary(1, email="a@x.com", phone=555), secondary(2, 1, email="b@x.com", phone=555)]

    result = consolidate(identity, matches)

    assert result.instruction.linkPrecedence == LinkPrecedence.SECONDARY
    assert result.instruction.linkedId == 1
    assert result.instruction.email == "c@x.com"

    view = result.complete(7)
    assert view.primaryContactId == 1
    assert view.secondaryContactIds == [2, 7]
    assert view.emails == ["a@x.com", "b@x.com"]
    # the matched view is not changed by completing it
    assert result.view.secondaryContactIds == [2]


def test_bridged_clusters_are_not_merged():
    identity = Identity(email="a@x.com", phoneNumber=777)
    matches = [primary(1, email="a@x.com", phone=555), primary(4, email="z@x.com", phone=777)]

    result = consolidate(identity, matches)

    assert result.instruction is None
    view = result.complete()
    assert view.primaryContactId == 1
    assert view.emails == ["a@x.com", "z@x.com"]
    assert view.phoneNumbers == [555, 777]
    assert view.secondaryContactIds == []
