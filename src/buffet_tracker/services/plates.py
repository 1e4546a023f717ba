"""State machine for building a plate from a photo or manual entry."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field, fields, replace

from buffet_tracker.domain.catalog import MenuEntry, PriceMode
from buffet_tracker.domain.plates import (
    Capturing,
    Committed,
    Discarded,
    Draft,
    Empty,
    PlateItem,
    PlateState,
    Recognizing,
    Totals,
)
from buffet_tracker.errors import InputError
from buffet_tracker.services.ledger import HistoryLedger, fold_items
from buffet_tracker.services.recognition import RecognitionService
from buffet_tracker.services.valuation import resolve_recognized_item, suggest

_logger = logging.getLogger(__name__)

MANUAL_COMMENT = "Manual input"


def blank_item() -> PlateItem:
    """Return the empty row used for manual entry."""
    return PlateItem(name="")


@dataclass
class PlateBuilder:
    """Drives one plate from capture through draft editing to commit."""

    state: PlateState = field(default_factory=Empty)

    @property
    def items(self) -> list[PlateItem]:
        """Return draft items, or an empty list outside the draft state."""
        if isinstance(self.state, Draft):
            return list(self.state.items)
        return []

    def capture(self, image: bytes) -> None:
        """Attach a photo, dropping any previous draft."""
        if not image:
            raise InputError("Image data required")
        self._ensure_not_recognizing()
        self.state = Capturing(image=image)

    def start_manual(self) -> None:
        """Skip recognition and open a draft with one blank row."""
        self._ensure_not_recognizing()
        self.state = Draft(items=[blank_item()], comment=MANUAL_COMMENT)

    async def recognize(
        self, service: RecognitionService, catalog: Sequence[MenuEntry]
    ) -> Draft:
        """Recognize the captured photo and open a draft of enriched items.

        On failure the builder returns to the capturing state with the same
        image so the caller can retry, and the error propagates.
        """
        if not isinstance(self.state, Capturing):
            raise InputError("No captured image to recognize")
        image = self.state.image
        self.state = Recognizing(image=image)
        try:
            result = await service.recognize(image, catalog)
        except Exception:
            self.state = Capturing(image=image)
            raise
        items = [resolve_recognized_item(item, catalog) for item in result.items]
        draft = Draft(items=items, comment=result.comment, image=image)
        self.state = draft
        _logger.info("Recognized %s items", len(items))
        return draft

    def rename_item(
        self, index: int, name: str, catalog: Sequence[MenuEntry]
    ) -> list[MenuEntry]:
        """Update an item's name and return autocomplete suggestions."""
        item = self._item_at(index)
        self._set_item(index, replace(item, name=name))
        return suggest(name, catalog)

    def select_suggestion(self, index: int, entry: MenuEntry) -> PlateItem:
        """Overwrite an item with catalog metadata, keeping its count."""
        item = self._item_at(index)
        selected = replace(
            item,
            name=entry.name,
            price=entry.price,
            restaurant_price=entry.restaurant_price,
            calories=entry.calories,
            category=entry.category,
        )
        self._set_item(index, selected)
        return selected

    def adjust_count(self, index: int, delta: int) -> list[PlateItem]:
        """Change an item's count, clamping at zero and pruning empty rows."""
        draft = self._draft()
        item = self._item_at(index)
        items = list(draft.items)
        count = max(0, item.count + delta)
        if count == 0:
            del items[index]
        else:
            items[index] = replace(item, count=count)
        self.state = replace(draft, items=items)
        return items

    def add_item(self) -> None:
        """Append a blank row to the draft."""
        draft = self._draft()
        self.state = replace(draft, items=[*draft.items, blank_item()])

    def update_item(self, index: int, **changes: object) -> None:
        """Edit fields of a draft row; a count of zero removes it."""
        item = self._item_at(index)
        unknown = sorted(set(changes) - {f.name for f in fields(PlateItem)})
        if unknown:
            raise InputError(f"Unknown plate item field: {', '.join(unknown)}")
        updated = replace(item, **changes)
        if updated.count <= 0:
            self.remove_item(index)
            return
        self._set_item(index, updated)

    def remove_item(self, index: int) -> None:
        """Delete a draft row."""
        draft = self._draft()
        self._item_at(index)
        items = list(draft.items)
        del items[index]
        self.state = replace(draft, items=items)

    def totals(self, catalog: Sequence[MenuEntry], mode: PriceMode) -> Totals:
        """Return draft totals, re-resolving prices for the current mode."""
        return fold_items(self.items, mode, catalog)

    def commit(self, ledger: HistoryLedger) -> list[PlateItem]:
        """Append named items to the ledger and close the plate."""
        draft = self._draft()
        valid = [item for item in draft.items if item.name.strip()]
        if not valid:
            raise InputError("Plate has no named items")
        ledger.append(valid)
        self.state = Committed(items=valid)
        return valid

    def discard(self) -> None:
        """Drop all plate state without touching the ledger."""
        self.state = Discarded()

    def _draft(self) -> Draft:
        if not isinstance(self.state, Draft):
            raise InputError("No draft plate to edit")
        return self.state

    def _item_at(self, index: int) -> PlateItem:
        draft = self._draft()
        if not 0 <= index < len(draft.items):
            raise InputError(f"No plate item at position {index}")
        return draft.items[index]

    def _set_item(self, index: int, item: PlateItem) -> None:
        draft = self._draft()
        items = list(draft.items)
        items[index] = item
        self.state = replace(draft, items=items)

    def _ensure_not_recognizing(self) -> None:
        if isinstance(self.state, Recognizing):
            raise InputError("Recognition already in progress")
