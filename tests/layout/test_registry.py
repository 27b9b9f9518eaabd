"""Tests for the card registry."""

from healthhub.layout import registry
from healthhub.schemas import CardLayout


class TestCardRegistry:
    def test_text_card_prefix_is_exact(self):
        assert registry.is_text_card("text-card-1700000000000")
        assert not registry.is_text_card("textcard-1")
        assert not registry.is_text_card("my-text-card-1")

    def test_text_cards_allow_every_size_and_deletion(self):
        assert registry.is_card_deletable("text-card-1")
        for size in ("small", "medium", "large"):
            assert registry.is_size_allowed("text-card-1", size)

    def test_panels_are_not_deletable(self):
        assert not registry.is_card_deletable("readiness")
        assert not registry.is_card_deletable("nutrition")

    def test_panel_size_constraints(self):
        assert not registry.is_size_allowed("readiness", "small")
        assert registry.is_size_allowed("hydration", "small")
        assert not registry.is_size_allowed("hydration", "large")

    def test_unknown_card_falls_back(self):
        config = registry.get_card_config("mystery")
        assert config is registry.FALLBACK_CONFIG
        assert not registry.is_known_card("mystery")


class TestValidateLayoutIds:
    def test_valid_layout_has_no_problems(self):
        layouts = [
            CardLayout(id="readiness", order=0, size="large"),
            CardLayout(id="text-card-5", order=1, size="small"),
        ]
        assert registry.validate_layout_ids(layouts) == []

    def test_reports_duplicates_unknown_ids_and_sizes(self):
        layouts = [
            CardLayout(id="readiness", order=0, size="small"),
            CardLayout(id="mystery", order=1),
            CardLayout(id="mystery", order=2),
        ]
        problems = registry.validate_layout_ids(layouts)
        assert "Size small not allowed for card readiness" in problems
        assert "Unknown card id: mystery" in problems
        assert "Duplicate card id: mystery" in problems
