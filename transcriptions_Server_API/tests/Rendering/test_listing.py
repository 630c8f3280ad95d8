# test_listing.py
#
#
# Imports
#
# Third-Party Imports
import pytest
#
# Local Imports
from transcriptions_Server_API.app.core.Rendering.Listing import (
    UNCATEGORIZED,
    ListingService,
    last_name_sort_key,
    normalize_grouping,
)
from transcriptions_Server_API.app.core.Sync.models import RecordPayload
#
########################################################################################################################
#
# Functions:


def add(engine, external_id, title, **fields):
    body = {"externalId": external_id, "title": title, **fields}
    return engine.upsert(RecordPayload.from_body(body))


@pytest.fixture
def listing(sync_context, engine):
    return ListingService(sync_context, engine)


def keys(groups):
    return [group.key for group in groups]


def titles(group):
    return [item["title"] for item in group.items]


@pytest.mark.parametrize("raw,expected", [
    (None, "maqam"), ("", "maqam"), ("Composer", "composer"), (" form ", "form"), ("bogus", "maqam"),
])
def test_normalize_grouping(raw, expected):
    assert normalize_grouping(raw) == expected


def test_last_name_sort_key():
    names = ["Mary Smith", "John Adams", "Cher", "anne adams"]
    assert sorted(names, key=last_name_sort_key) == ["anne adams", "John Adams", "Cher", "Mary Smith"]


def test_composer_groups_sorted_by_last_name(listing, engine):
    add(engine, "a", "Zeta", composer="Mary Smith")
    add(engine, "b", "Alpha", composer="John Adams")
    add(engine, "c", "Beta", composer="Mary Smith")
    add(engine, "d", "No composer")

    groups = listing.grouped("composer")
    assert keys(groups) == ["John Adams", "Mary Smith"]
    assert titles(groups[1]) == ["Beta", "Zeta"]


def test_form_groups_collect_uncategorized(listing, engine):
    add(engine, "a", "Bashraf One", form="Bashraf")
    add(engine, "b", "Loose piece")
    add(engine, "c", "Longa One", form="Longa")

    groups = listing.grouped("form")
    assert keys(groups) == sorted(["Bashraf", "Longa", UNCATEGORIZED])
    uncategorized = next(group for group in groups if group.key == UNCATEGORIZED)
    assert titles(uncategorized) == ["Loose piece"]


def test_maqam_groups_follow_term_order_and_skip_unpublished(listing, engine, db_instance):
    add(engine, "a", "Rast piece", maqam="Rast")
    add(engine, "b", "Bayati piece", maqam="Bayati")
    draft = add(engine, "c", "Hijaz draft", maqam="Hijaz")
    add(engine, "d", "Untagged")
    db_instance.set_entity_status(draft.entity_ref.entity_id, "draft")

    groups = listing.grouped("maqam")
    assert keys(groups) == ["Bayati", "Rast"]
    assert all("Untagged" not in titles(group) for group in groups)


def test_listing_is_cached_until_an_entity_is_saved(listing, engine, sync_context):
    add(engine, "a", "First", form="Longa")
    first = listing.grouped("form")
    assert listing.grouped("form") is first
    assert "listing:form" in sync_context.listing_cache

    add(engine, "b", "Second", form="Longa")
    refreshed = listing.grouped("form")
    assert refreshed is not first
    assert titles(refreshed[0]) == ["First", "Second"]


def test_items_carry_permalinks(listing, engine):
    add(engine, "a", "Sama'i Nahawand", maqam="Nahawand")
    item = listing.grouped()[0].items[0]
    assert item["url"] == "https://example.org/transcriptions/sama-i-nahawand/"
    assert item["maqam"] == "Nahawand"

#
# End of test_listing.py
########################################################################################################################
