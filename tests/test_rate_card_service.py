"""Tests for the rate card store: base cards, bands and seller overrides."""

from decimal import Decimal

import pytest

from utils.exceptions import NotFound, ValidationError


ACME_TUPLE = {
    "courier": "acme",
    "product_name": "Acme Surface",
    "mode": "Surface",
    "zone": "Rest of India",
}


def _patch(**fields):
    patch = dict(ACME_TUPLE)
    patch.update(fields)
    return patch


class TestResolveEffectiveRates:
    def test_base_cards_without_overrides(self, rate_card_service, make_seller, make_rate_card):
        seller_id = make_seller()
        card_id = make_rate_card()

        rates = rate_card_service.resolve_effective_rates(seller_id)

        assert len(rates) == 1
        rate = rates[0]
        assert rate.base_rate_card_id == card_id
        assert rate.base_rate == Decimal("30")
        assert rate.additional_rate == Decimal("15")
        assert not rate.is_override
        assert rate.override_id is None

    def test_override_merges_with_inherited_fields(
        self, rate_card_service, make_seller, make_rate_card
    ):
        seller_id = make_seller()
        make_rate_card()
        override, _ = rate_card_service.create_or_update_override(
            seller_id, _patch(base_rate=25), actor_id=7
        )

        rates = rate_card_service.resolve_effective_rates(seller_id)

        assert len(rates) == 1
        rate = rates[0]
        assert rate.base_rate == Decimal("25")
        assert rate.additional_rate == Decimal("15")
        assert rate.minimum_billable_weight == Decimal("0.5")
        assert rate.is_override
        assert rate.override_id == override.id

    def test_only_cards_of_the_seller_band(self, rate_card_service, make_seller, make_rate_card):
        seller_id = make_seller(rate_band="RBX2")
        make_rate_card()
        make_rate_card(rate_band="RBX2", base_rate=Decimal("20"))

        rates = rate_card_service.resolve_effective_rates(seller_id)

        assert [rate.rate_band for rate in rates] == ["RBX2"]
        assert rates[0].base_rate == Decimal("20")

    def test_seller_without_band_gets_default(self, rate_card_service, make_seller, make_rate_card):
        seller_id = make_seller(rate_band=None)
        make_rate_card()

        rates = rate_card_service.resolve_effective_rates(seller_id)
        assert [rate.rate_band for rate in rates] == ["RBX1"]

    def test_inactive_cards_are_ignored(self, rate_card_service, make_seller, make_rate_card):
        seller_id = make_seller()
        make_rate_card(is_active=False)

        assert rate_card_service.resolve_effective_rates(seller_id) == []

    def test_unknown_seller(self, rate_card_service):
        with pytest.raises(NotFound):
            rate_card_service.resolve_effective_rates(404)


class TestOverrides:
    def test_requires_base_card_in_band(self, rate_card_service, make_seller, make_rate_card):
        seller_id = make_seller(rate_band="RBX2")
        make_rate_card(rate_band="RBX1")

        with pytest.raises(NotFound):
            rate_card_service.create_or_update_override(
                seller_id, _patch(base_rate=25), actor_id=1
            )
        assert rate_card_service.get_seller_overrides(seller_id) == []

    def test_requires_known_seller(self, rate_card_service, make_rate_card):
        make_rate_card()
        with pytest.raises(NotFound):
            rate_card_service.create_or_update_override(404, _patch(base_rate=25), actor_id=1)

    def test_rejects_bad_patch(self, rate_card_service, make_seller, make_rate_card):
        seller_id = make_seller()
        make_rate_card()

        with pytest.raises(ValidationError) as exc:
            rate_card_service.create_or_update_override(
                seller_id, _patch(cod_percent=150), actor_id=1
            )
        assert "cod_percent" in exc.value.fields

    def test_second_write_updates_in_place(
        self, rate_card_service, make_seller, make_rate_card
    ):
        seller_id = make_seller()
        make_rate_card()

        first, first_is_new = rate_card_service.create_or_update_override(
            seller_id, _patch(base_rate=25), actor_id=1
        )
        second, second_is_new = rate_card_service.create_or_update_override(
            seller_id, _patch(additional_rate=10, notes="festive"), actor_id=2
        )

        assert first_is_new
        assert not second_is_new
        assert second.id == first.id
        assert second.created_by == 1
        assert second.updated_by == 2
        # the patch replaces the stored override, unset fields inherit again
        assert second.base_rate is None
        assert second.additional_rate == Decimal("10")
        assert len(rate_card_service.get_seller_overrides(seller_id)) == 1

    def test_removal_restores_base_values(
        self, rate_card_service, make_seller, make_rate_card
    ):
        seller_id = make_seller()
        make_rate_card()
        override, _ = rate_card_service.create_or_update_override(
            seller_id, _patch(base_rate=25), actor_id=1
        )

        rate_card_service.remove_override(seller_id, override.id)

        rates = rate_card_service.resolve_effective_rates(seller_id)
        assert rates[0].base_rate == Decimal("30")
        assert not rates[0].is_override

    def test_cannot_remove_another_sellers_override(
        self, rate_card_service, make_seller, make_rate_card
    ):
        owner = make_seller()
        other = make_seller(business_name="Other")
        make_rate_card()
        override, _ = rate_card_service.create_or_update_override(
            owner, _patch(base_rate=25), actor_id=1
        )

        with pytest.raises(NotFound):
            rate_card_service.remove_override(other, override.id)
        assert len(rate_card_service.get_seller_overrides(owner)) == 1

    def test_remove_unknown_override(self, rate_card_service, make_seller):
        seller_id = make_seller()
        with pytest.raises(NotFound):
            rate_card_service.remove_override(seller_id, 999)

    def test_inactive_override_is_not_applied(
        self, rate_card_service, make_seller, make_rate_card
    ):
        seller_id = make_seller()
        make_rate_card()
        rate_card_service.create_or_update_override(
            seller_id, _patch(base_rate=25, is_active=False), actor_id=1
        )

        rates = rate_card_service.resolve_effective_rates(seller_id)
        assert rates[0].base_rate == Decimal("30")
        assert not rates[0].is_override


class TestRateCardAdmin:
    def test_upsert_creates_then_updates(self, rate_card_service):
        data = dict(ACME_TUPLE, base_rate=30, additional_rate=15)

        created, created_is_new = rate_card_service.create_or_update_rate_card(data)
        updated, updated_is_new = rate_card_service.create_or_update_rate_card(
            dict(data, base_rate=35)
        )

        assert created_is_new
        assert not updated_is_new
        assert updated.id == created.id
        assert updated.base_rate == Decimal("35")

    def test_upsert_rejects_unknown_zone(self, rate_card_service):
        with pytest.raises(ValidationError) as exc:
            rate_card_service.create_or_update_rate_card(
                dict(ACME_TUPLE, zone="Mars", base_rate=30, additional_rate=15)
            )
        assert "zone" in exc.value.fields

    def test_deactivate(self, rate_card_service, make_rate_card):
        card_id = make_rate_card()

        card = rate_card_service.deactivate_rate_card(card_id)

        assert not card.is_active
        assert rate_card_service.list_rate_cards() == []

    def test_deactivate_unknown(self, rate_card_service):
        with pytest.raises(NotFound):
            rate_card_service.deactivate_rate_card(999)

    def test_list_filters(self, rate_card_service, make_rate_card):
        make_rate_card()
        make_rate_card(courier="bluedart", product_name="Bluedart Air", mode="Air")
        make_rate_card(zone="Metro to Metro")

        assert len(rate_card_service.list_rate_cards()) == 3
        assert len(rate_card_service.list_rate_cards(courier="bluedart")) == 1
        assert len(rate_card_service.list_rate_cards(zone="Metro to Metro")) == 1
        assert len(rate_card_service.list_rate_cards(mode="Surface")) == 2

    def test_active_couriers_and_statistics(self, rate_card_service, make_rate_card):
        make_rate_card()
        make_rate_card(zone="Metro to Metro")
        make_rate_card(courier="bluedart", product_name="Bluedart Air", mode="Air")
        make_rate_card(courier="dtdc", product_name="DTDC Lite", is_active=False)

        assert rate_card_service.get_active_couriers() == ["acme", "bluedart"]

        stats = rate_card_service.get_statistics()
        assert stats.total_rate_cards == 4
        assert stats.active_rate_cards == 3
        assert stats.by_courier == {"acme": 2, "bluedart": 1}
        assert stats.by_zone == {"Rest of India": 2, "Metro to Metro": 1}
        assert stats.by_mode == {"Surface": 2, "Air": 1}
