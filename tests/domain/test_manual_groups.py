import pytest

from shareholder_tracker.config import CATEGORY_MAP
from shareholder_tracker.domain.errors import (
    CategoryRequiredError,
    DuplicateGroupNameError,
    InvalidGroupError,
)
from shareholder_tracker.domain.manual_groups import (
    group_history,
    parse_group_members,
    remove_group,
    resolve_members,
    validate_group_save,
)
from shareholder_tracker.domain.models import EntitySnapshot, GroupDefinition, GroupMember


def make_entity(key: str, name: str, category: str, history: dict, pan: str | None = None) -> EntitySnapshot:
    return EntitySnapshot(
        canonical_key=key,
        name=name,
        category=category,
        description="",
        monthly_shares=history,
        fund_group=name.upper(),
        pan=pan,
    )


@pytest.fixture
def entities() -> list[EntitySnapshot]:
    return [
        make_entity("AAAAA1111A", "Alpha Global", "FII", {"2024-01-31": 100, "2024-02-29": 120}, pan="AAAAA1111A"),
        make_entity("BBBBB2222B", "Bharat Fund", "DII", {"2024-01-31": 50}, pan="BBBBB2222B"),
        make_entity("Gamma Holdings", "Gamma Holdings", "FII", {"2024-02-29": 30}),
    ]


def test_mixed_categories_without_choice_are_rejected(entities):
    with pytest.raises(CategoryRequiredError) as excinfo:
        validate_group_save("Foreign + Domestic", ["AAAAA1111A", "BBBBB2222B"], None, [], entities)

    assert excinfo.value.categories == ["DII", "FII"]
    assert excinfo.value.status_code == 400
    assert excinfo.value.to_payload() == {"error": "category_required", "categories": ["DII", "FII"]}


def test_single_member_category_is_adopted(entities):
    group = validate_group_save("Foreign", ["AAAAA1111A", "Gamma Holdings"], None, [], entities)

    assert group.category == "FII"
    assert group.id is None
    assert group.member_keys == ["AAAAA1111A", "Gamma Holdings"]


def test_explicit_category_wins_and_is_normalized(entities):
    group = validate_group_save(
        "Mixed", ["AAAAA1111A", "BBBBB2222B"], "fii", [], entities, category_map=CATEGORY_MAP
    )
    assert group.category == "FIIs"


def test_unknown_members_leave_category_unset(entities):
    group = validate_group_save("Ghosts", ["Nobody"], None, [], entities)
    assert group.category is None


def test_duplicate_name_is_rejected(entities):
    existing = [GroupDefinition(id=1, name="Foreign", category="FII", members=(GroupMember("AAAAA1111A"),))]

    with pytest.raises(DuplicateGroupNameError) as excinfo:
        validate_group_save("Foreign", ["Gamma Holdings"], None, existing, entities)

    assert excinfo.value.status_code == 409
    assert excinfo.value.to_payload() == {"error": "duplicate_name"}


def test_update_may_keep_its_own_name(entities):
    existing = [GroupDefinition(id=1, name="Foreign", category="FII", members=(GroupMember("AAAAA1111A"),))]

    group = validate_group_save("Foreign", ["Gamma Holdings"], None, existing, entities, group_id=1)

    assert group.id == 1
    assert group.member_keys == ["Gamma Holdings"]


@pytest.mark.parametrize("name, members", [("  ", ["AAAAA1111A"]), ("Empty", []), ("Bad", "AAAAA1111A")])
def test_blank_name_or_members_are_invalid(entities, name, members):
    with pytest.raises(InvalidGroupError):
        validate_group_save(name, members, None, [], entities)


def test_parse_group_members_accepts_loose_shapes():
    members = parse_group_members(
        [
            " aaaaa1111a ",
            {"pan": "bbbbb2222b", "name": " Bharat Fund "},
            {"memberKey": "Gamma Holdings"},
            "",
            "AAAAA1111A",
            42,
        ]
    )

    assert [m.key for m in members] == ["AAAAA1111A", "BBBBB2222B", "Gamma Holdings"]
    assert members[1].pan == "BBBBB2222B"
    assert members[1].name == "Bharat Fund"


def test_parse_group_members_rejects_non_sequences():
    assert parse_group_members(None) == ()
    assert parse_group_members({"key": "x"}) == ()


def test_resolve_members_matches_by_pan_or_name(entities):
    members = (GroupMember(key="Bharat Fund"), GroupMember(key="unknown", pan="AAAAA1111A"))
    resolved = resolve_members(members, entities)
    assert [e.canonical_key for e in resolved] == ["BBBBB2222B", "AAAAA1111A"]


def test_ten_letter_names_resolve_through_plain_string_keys():
    holders = [
        make_entity("Rahul Gupta", "Rahul Gupta", "DII", {"2024-01-31": 10}),
        make_entity("ABC FUND", "ABC FUND", "FII", {"2024-01-31": 20}),
        make_entity("Blackstone", "Blackstone", "FII", {"2024-01-31": 5}),
    ]

    with pytest.raises(CategoryRequiredError) as excinfo:
        validate_group_save("G", ["Rahul Gupta", "ABC FUND"], None, [], holders)
    assert excinfo.value.categories == ["DII", "FII"]

    group = GroupDefinition(1, "G", None, parse_group_members(["Rahul Gupta", "ABC FUND", "Blackstone"]))
    assert group_history(group, holders) == {"2024-01-31": 35}


def test_category_conflict_is_reported_before_duplicate_name(entities):
    existing = [GroupDefinition(id=1, name="Foreign", category="FII", members=(GroupMember("AAAAA1111A"),))]

    with pytest.raises(CategoryRequiredError):
        validate_group_save("Foreign", ["AAAAA1111A", "BBBBB2222B"], None, existing, entities)



def test_group_history_sums_without_touching_entities(entities):
    group = GroupDefinition(id=1, name="All", category=None, members=parse_group_members(
        ["AAAAA1111A", "BBBBB2222B", "Gamma Holdings"]
    ))

    assert group_history(group, entities) == {"2024-01-31": 150, "2024-02-29": 150}
    assert dict(entities[0].monthly_shares) == {"2024-01-31": 100, "2024-02-29": 120}


def test_remove_group_drops_by_id():
    groups = [GroupDefinition(1, "A", None), GroupDefinition(2, "B", None)]
    assert [g.name for g in remove_group(groups, 1)] == ["B"]
