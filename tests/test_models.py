"""Tests for ledger records and their wire format."""

import json

import pytest
from pydantic import ValidationError

from cardledger.models.card import (
    Card,
    CardStatus,
    TemplateFields,
    generate_card_id,
    is_instance_id,
    is_reserved_card_id,
)
from cardledger.models.directory import Role, User, shop_key, user_key
from cardledger.models.registry import RegistryIndex
from cardledger.models.shop_ledger import ShopLedger, shop_ledger_key


class TestCard:
    def test_template_keyed_by_template_id(self) -> None:
        """A card without an id is a template stored under its template id."""
        card = Card(template_id="ABC001")

        assert card.is_template
        assert card.key == "ABC001"

    def test_instance_keyed_by_card_id(self) -> None:
        """An issued card is stored under its own id."""
        card = Card(template_id="ABC001", card_id="ABC001-A1000001")

        assert not card.is_template
        assert card.key == "ABC001-A1000001"

    def test_wire_names(self) -> None:
        """Serialized cards use the stable wire field names."""
        card = Card(
            template_id="ABC001",
            issuer_shop_id="S1",
            card_class="gold",
            phone="555",
            status=CardStatus.AT_CONSUMER,
        )

        data = json.loads(card.model_dump_json(by_alias=True))

        assert data["kakaid"] == "ABC001"
        assert data["shopid"] == "S1"
        assert data["cardclass"] == "gold"
        assert data["tel"] == "555"
        assert data["status"] == 2

    def test_round_trip_is_lossless(self) -> None:
        """Every field survives serialize then parse."""
        card = Card(
            template_id="ABC001",
            issuer_shop_name="Shop One",
            issuer_shop_id="S1",
            card_id="ABC001-A1000007",
            category="food",
            level="3",
            card_class="gold",
            owner="C1",
            phone="555",
            password="secret",
            money=70,
            point=40,
            expiry_date="2030-12-31",
            acquired_date="2017-03-02 01:04:05 PM",
            release_date="2017-03-01 09:00:00 AM",
            expired=True,
            scrapped=False,
            status=CardStatus.AT_CONSUMER,
        )

        restored = Card.model_validate_json(card.model_dump_json(by_alias=True))

        assert restored == card

    def test_negative_balance_rejected(self) -> None:
        """Balances cannot be negative."""
        with pytest.raises(ValidationError):
            Card(template_id="ABC001", money=-1)

    def test_unknown_field_rejected(self) -> None:
        """Stored records with unexpected fields do not parse."""
        with pytest.raises(ValidationError):
            Card.model_validate_json('{"kakaid": "ABC001", "color": "red"}')

    def test_is_active(self) -> None:
        """Only unscrapped, unexpired cards held by consumers are active."""
        card = Card(template_id="ABC001", card_id="ABC001-A1", status=CardStatus.AT_CONSUMER)

        assert card.is_active
        assert not card.model_copy(update={"expired": True}).is_active
        assert not card.model_copy(update={"scrapped": True}).is_active
        assert not card.model_copy(update={"status": CardStatus.AT_SHOP}).is_active

    def test_missing_fields(self) -> None:
        card = Card(template_id="ABC001", issuer_shop_id="S1")

        assert card.missing_fields(("issuer_shop_id", "card_class")) == ["card_class"]

    def test_issue_copy_keeps_template_untouched(self) -> None:
        """Issuing copies fields without modifying the template."""
        template = Card(template_id="ABC001", money=100, point=50)

        card = template.issue_copy("ABC001-A1000001")

        assert card.card_id == "ABC001-A1000001"
        assert card.money == 100
        assert template.card_id == ""


class TestCardIds:
    def test_generate_card_id(self) -> None:
        assert generate_card_id("ABC001", 1) == "ABC001-A1000001"
        assert generate_card_id("ABC001", 42) == "ABC001-A1000042"

    def test_is_instance_id(self) -> None:
        assert is_instance_id("ABC001-A1000001")
        assert not is_instance_id("ABC001")

    @pytest.mark.parametrize(
        "card_id",
        ["ABC001-A1000002", "XYZ_9-A1", "shopledger-S1-XYZ001", "user:C1-x", "shop:S1-x"],
    )
    def test_reserved_card_ids(self, card_id: str) -> None:
        assert is_reserved_card_id(card_id)

    @pytest.mark.parametrize("card_id", ["ABC001-VIP7", "ABC001-A12X", "ABC001-B1000001"])
    def test_custom_card_ids(self, card_id: str) -> None:
        assert not is_reserved_card_id(card_id)


class TestTemplateFields:
    def test_parses_wire_names(self) -> None:
        fields = TemplateFields.model_validate_json('{"shopid": "S1", "money": 10}')

        assert fields.issuer_shop_id == "S1"
        assert fields.money == 10

    def test_rejects_identity_fields(self) -> None:
        """Owner, ids and status cannot be supplied for a template."""
        with pytest.raises(ValidationError):
            TemplateFields.model_validate_json('{"owner": "C1"}')

    def test_rejects_mistyped_amount(self) -> None:
        with pytest.raises(ValidationError):
            TemplateFields.model_validate_json('{"money": "10"}')


class TestShopLedger:
    def test_key(self) -> None:
        ledger = ShopLedger(template_id="ABC001", shop_id="S1")

        assert ledger.key == "shopledger-S1-ABC001"
        assert ledger.key == shop_ledger_key("S1", "ABC001")

    def test_counters_start_at_zero(self) -> None:
        ledger = ShopLedger(template_id="ABC001", shop_id="S1")

        assert ledger.card_index == 0
        assert ledger.quantity == 0
        assert ledger.consume_money == 0

    def test_wire_names(self) -> None:
        ledger = ShopLedger(template_id="ABC001", shop_id="S1", card_index=3, quantity=3)

        data = json.loads(ledger.model_dump_json(by_alias=True))

        assert data["cardIdIndex"] == 3
        assert data["qty"] == 3
        assert "depositPoint" in data
        assert "backNum" in data


class TestDirectory:
    def test_user_affiliation_is_role(self) -> None:
        user = User.model_validate_json('{"identity": "S1", "affiliation": 2}')

        assert user.affiliation is Role.SHOP

    def test_unknown_role_rejected(self) -> None:
        with pytest.raises(ValidationError):
            User.model_validate_json('{"identity": "S1", "affiliation": 9}')

    def test_keys_do_not_collide(self) -> None:
        """A shop user and its shop record live under different keys."""
        assert user_key("S1") != shop_key("S1")


class TestRegistryIndex:
    def test_add_deduplicates(self) -> None:
        index = RegistryIndex()

        index.add("a", "b", "a")

        assert index.ids == ["a", "b"]

    def test_add_batch_to_large_index(self) -> None:
        """Listed ids are skipped and new ones keep their batch order."""
        existing = [f"ABC001-A{1000001 + i}" for i in range(5000)]
        index = RegistryIndex(ids=list(existing))

        index.add(existing[10], "ABC001-A2000000", existing[-1], "ABC001-A1999999")

        assert len(index.ids) == 5002
        assert index.ids[-2:] == ["ABC001-A2000000", "ABC001-A1999999"]

    def test_remove(self) -> None:
        index = RegistryIndex(ids=["a", "b"])

        assert index.remove("a")
        assert not index.remove("zzz")
        assert index.ids == ["b"]

    def test_replace_keeps_position(self) -> None:
        index = RegistryIndex(ids=["a", "b", "c"])

        index.replace("b", "x")

        assert index.ids == ["a", "x", "c"]
