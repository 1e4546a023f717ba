"""Pydantic models for HTTP request payloads."""

from pydantic import BaseModel, ConfigDict, Field

from buffet_tracker.domain.catalog import MenuEntry, PriceMode
from buffet_tracker.domain.plates import DEFAULT_CATEGORY, PlateItem


class PlateItemPayload(BaseModel):
    """Plate item as sent by the browser client."""

    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=False)

    name: str = ""
    price: float | None = None
    restaurant_price: float | None = Field(default=None, alias="restaurantPrice")
    calories: float | None = None
    count: int | None = Field(default=None, ge=0)
    category: str | None = None
    ml: float | None = Field(default=None, ge=0)

    def to_item(self) -> PlateItem:
        """Convert to a domain item, applying defaults for missing fields."""
        return PlateItem(
            name=self.name,
            price=self.price or 0.0,
            restaurant_price=self.restaurant_price or 0.0,
            calories=self.calories or 0.0,
            count=1 if self.count is None else self.count,
            category=self.category or DEFAULT_CATEGORY,
            ml=self.ml,
        )


class SubmitPlateRequest(BaseModel):
    """Incremental plate submission."""

    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=False)

    user_id: str | None = Field(default=None, alias="userId")
    items: list[PlateItemPayload] = Field(default_factory=list)
    total_price: float | None = Field(default=None, alias="totalPrice")
    total_calories: float | None = Field(default=None, alias="totalCalories")
    timestamp: int | None = None


class UpdateHistoryRequest(BaseModel):
    """Full replacement of a user's history after local edits."""

    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=False)

    user_id: str | None = Field(default=None, alias="userId")
    action: str = "updateHistory"
    updated_history: list[PlateItemPayload] = Field(
        default_factory=list, alias="updatedHistory"
    )
    price_mode: PriceMode = Field(default=PriceMode.MARKET, alias="priceMode")
    timestamp: int | None = None


class MenuEntryPayload(BaseModel):
    """Catalog entry supplied as recognition context."""

    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=False)

    category: str = ""
    name: str
    price: float = Field(default=0, ge=0)
    restaurant_price: float = Field(default=0, ge=0, alias="restaurantPrice")
    calories: float = Field(default=0, ge=0)
    desc: str = ""

    def to_entry(self) -> MenuEntry:
        """Convert to a domain catalog entry."""
        return MenuEntry(
            category=self.category,
            name=self.name,
            price=self.price,
            restaurant_price=self.restaurant_price,
            calories=self.calories,
            desc=self.desc,
        )


class AnalyzeRequest(BaseModel):
    """Photo recognition request."""

    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=False)

    image: str | None = None
    menu_db: list[MenuEntryPayload] | None = Field(default=None, alias="menuDB")
