"""Per-diner session owning the catalog, plate and history ledger."""

from dataclasses import dataclass, field
from datetime import datetime
from zoneinfo import ZoneInfo

from buffet_tracker.domain.catalog import CatalogSnapshot, GuideEntry, PriceMode
from buffet_tracker.domain.plates import Draft, PlateItem, Totals
from buffet_tracker.services.budgets import (
    BudgetProgress,
    BudgetTargets,
    WindowStatus,
    budget_progress,
    current_window,
)
from buffet_tracker.services.catalog import CatalogService, build_guide
from buffet_tracker.services.ledger import HistoryLedger, fold_items
from buffet_tracker.services.plates import PlateBuilder
from buffet_tracker.services.recognition import RecognitionService


@dataclass(frozen=True)
class PlateSubmission:
    """Committed items with the totals the diner saw at commit time."""

    items: list[PlateItem]
    total_price: float
    total_calories: float


@dataclass(frozen=True)
class DashboardSummary:
    """Running figures for the current visit."""

    totals: Totals
    dish_count: int
    progress: BudgetProgress
    window: WindowStatus
    price_mode: PriceMode
    from_sheet: bool


@dataclass
class DiningSession:
    """State for one diner's visit, passed explicitly to each operation."""

    catalog: CatalogSnapshot
    price_mode: PriceMode = PriceMode.MARKET
    ledger: HistoryLedger = field(default_factory=HistoryLedger)
    plate: PlateBuilder = field(default_factory=PlateBuilder)
    targets: BudgetTargets = field(default_factory=BudgetTargets)
    timezone_name: str = "Asia/Taipei"

    @classmethod
    async def start(
        cls, catalog_service: CatalogService, **kwargs: object
    ) -> "DiningSession":
        """Open a session with a freshly loaded catalog."""
        snapshot = await catalog_service.load()
        return cls(catalog=snapshot, **kwargs)

    async def refresh_catalog(
        self, catalog_service: CatalogService, url: str | None = None
    ) -> CatalogSnapshot:
        """Replace the catalog wholesale with a fresh fetch."""
        self.catalog = await catalog_service.load(url, force=True)
        return self.catalog

    def toggle_price_mode(self) -> PriceMode:
        """Switch between market and hotel valuation."""
        if self.price_mode is PriceMode.MARKET:
            self.price_mode = PriceMode.HOTEL
        else:
            self.price_mode = PriceMode.MARKET
        return self.price_mode

    async def recognize(self, service: RecognitionService) -> Draft:
        """Recognize the captured photo against this session's catalog."""
        return await self.plate.recognize(service, self.catalog.entries)

    def plate_totals(self) -> Totals:
        """Return totals of the draft plate in the current mode."""
        return self.plate.totals(self.catalog.entries, self.price_mode)

    def commit_plate(self) -> PlateSubmission:
        """Commit the draft to the ledger and return what to submit."""
        items = self.plate.commit(self.ledger)
        totals = fold_items(items, self.price_mode, self.catalog.entries)
        return PlateSubmission(
            items=items,
            total_price=totals.price,
            total_calories=totals.calories,
        )

    def history_totals(self) -> Totals:
        """Return totals of every committed item in the current mode."""
        return self.ledger.fold(self.price_mode, self.catalog.entries)

    def dashboard(self, now: datetime | None = None) -> DashboardSummary:
        """Summarize the visit against budgets and dining windows."""
        moment = now or datetime.now(tz=ZoneInfo(self.timezone_name))
        totals = self.history_totals()
        return DashboardSummary(
            totals=totals,
            dish_count=self.ledger.dish_count(),
            progress=budget_progress(totals, self.targets, moment),
            window=current_window(moment),
            price_mode=self.price_mode,
            from_sheet=self.catalog.from_sheet,
        )

    def guide(self, **options: object) -> list[GuideEntry]:
        """Return the menu value guide in the current mode."""
        return build_guide(self.catalog.entries, self.price_mode, **options)
