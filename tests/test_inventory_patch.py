import pytest

from core.errors import ValidationError
from inventory import ItemPatch, patch_assignments
from inventory.patch import render_set_clause


def test_empty_patch_has_no_assignments():
    assert patch_assignments(ItemPatch()) == []


def test_only_given_fields_are_assigned():
    patch = ItemPatch(name="  Stapler ", quantity=0, status="inactive")

    assert patch_assignments(patch) == [("name", "Stapler"), ("quantity", 0), ("status", "inactive")]


def test_clear_flags_set_null():
    patch = ItemPatch(description="ignored", clear_description=True, clear_category=True)

    assert patch_assignments(patch) == [("description", None), ("category_id", None)]


@pytest.mark.parametrize(
    "patch",
    [ItemPatch(name="   "), ItemPatch(quantity=-1), ItemPatch(status="archived")],
)
def test_invalid_values_rejected(patch):
    with pytest.raises(ValidationError):
        patch_assignments(patch)


def test_from_mapping_drops_unknown_keys():
    patch = ItemPatch.from_mapping({"name": "Desk", "id": "x", "created_at": "now"})
    assert patch == ItemPatch(name="Desk")


def test_render_set_clause():
    clause, params = render_set_clause([("name", "Desk"), ("quantity", 3)])
    assert clause == "name = ?, quantity = ?"
    assert params == ["Desk", 3]
