"""Restore engine — replays a validated backup into a user's namespaces.

Restore runs three independent steps (layouts, presets, text cards) and is
not transactional: the first failing step aborts the rest and whatever was
already written stays written. ``RestoreFailure.step`` tells the caller
where it stopped.
"""

from __future__ import annotations

from typing import Any, Optional

from ..errors import HealthHubError, RestoreFailure
from ..layout.engine import LAYOUT_PAGES
from ..layout.repository import LayoutRepository
from ..schemas import BackupData, RestoreOptions, RestoreReport, TextCardInput
from ..textcards.store import TextCardStore
from ..utils.logging import get_logger
from .validator import parse_backup

logger = get_logger("maintenance.restore")


class RestoreEngine:
    """Writes backup contents back through the layout and text card owners."""

    def __init__(self, layouts: LayoutRepository, text_cards: TextCardStore):
        self._layouts = layouts
        self._text_cards = text_cards

    async def restore_from_backup(
        self,
        backup: BackupData | dict[str, Any],
        user_id: str,
        options: Optional[RestoreOptions] = None,
    ) -> RestoreReport:
        """Restore the enabled parts of a backup for ``user_id``.

        The document is validated first; an invalid one raises
        ``BackupValidationError`` before anything is written.

        Raises:
            BackupValidationError: the document is not a valid backup.
            RestoreFailure: a write failed; later steps were skipped.
        """
        options = options or RestoreOptions()
        if isinstance(backup, BackupData):
            backup = backup.to_document()
        parsed = parse_backup(backup)

        report = RestoreReport()
        logger.info(
            "restore_started",
            user_id=user_id,
            source_user=parsed.user_id,
            backup_date=parsed.backup_date,
            options=options.model_dump(),
        )

        if options.restore_layouts:
            await self._run_step("layouts", self._restore_layouts(parsed, user_id, report), user_id)
        if options.restore_presets:
            await self._run_step("presets", self._restore_presets(parsed, user_id, report), user_id)
        if options.restore_text_cards:
            await self._run_step(
                "textCards",
                self._restore_text_cards(parsed, user_id, options.overwrite_existing, report),
                user_id,
            )

        logger.info("restore_complete", user_id=user_id, report=report.model_dump())
        return report

    async def _run_step(self, step: str, coro, user_id: str) -> None:
        try:
            await coro
        except (HealthHubError, ValueError) as e:
            logger.error("restore_step_failed", user_id=user_id, step=step, error=str(e))
            raise RestoreFailure(step, e) from e

    async def _restore_layouts(self, backup: BackupData, user_id: str, report: RestoreReport) -> None:
        pages = {"dashboard": backup.data.layouts.current, **backup.data.layouts.pages}
        for page, cards in pages.items():
            if not cards:
                continue
            if page not in LAYOUT_PAGES:
                logger.warning("restore_page_skipped", user_id=user_id, page=page)
                continue
            # Whole-document overwrite regardless of overwrite_existing
            await self._layouts.save_page(user_id, page, cards, restored=True)
            report.layout_cards_restored += len(cards)

    async def _restore_presets(self, backup: BackupData, user_id: str, report: RestoreReport) -> None:
        for preset in backup.data.layouts.presets:
            await self._layouts.save_preset(user_id, preset, restored=True)
            report.presets_restored += 1

    async def _restore_text_cards(
        self,
        backup: BackupData,
        user_id: str,
        overwrite_existing: bool,
        report: RestoreReport,
    ) -> None:
        for card in backup.data.text_cards:
            if not overwrite_existing:
                existing = await self._text_cards.load_text_card(user_id, card.id, card.page)
                if existing is not None:
                    report.text_cards_skipped += 1
                    continue

            await self._text_cards.save_text_card(
                user_id,
                card.id,
                TextCardInput(
                    title=card.title,
                    description=card.description,
                    content=card.content,
                    page=card.page,
                ),
            )
            report.text_cards_restored += 1
