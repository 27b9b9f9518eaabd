"""Rich-text cards scoped to a user and page."""

from .store import TEXT_CARD_PAGES, TextCardStore, is_text_card, page_from_location

__all__ = ["TEXT_CARD_PAGES", "TextCardStore", "is_text_card", "page_from_location"]
