from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core import constants


class DishStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    SOLD_OUT = "SOLD_OUT"
    HIDDEN = "HIDDEN"


class DishBadge(str, Enum):
    NONE = "none"
    NEW = "new"
    HIT = "hit"
    SPICY = "spicy"
    VEGAN = "vegan"


class AnimationStyle(str, Enum):
    FADE = "fade"
    SLIDE_UP = "slide-up"
    BOUNCE = "bounce"


class AppTheme(str, Enum):
    DEFAULT = "default"
    NEW_YEAR = "new-year"
    SPRING = "spring"
    AUTUMN = "autumn"


class _WireModel(BaseModel):
    # Wire format is camelCase; Python code uses snake_case
    model_config = ConfigDict(populate_by_name=True, extra="ignore", use_enum_values=False)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class Category(_WireModel):
    id: str
    name: str
    order: int = 0
    is_visible: bool = Field(True, alias="isVisible")


class Dish(_WireModel):
    id: str
    name: str
    description: str = ""
    category: str = ""  # Category.id; may dangle
    price: int = Field(0, ge=0)
    discount_price: Optional[int] = Field(None, alias="discountPrice", ge=0)
    status: DishStatus = DishStatus.AVAILABLE
    badge: DishBadge = DishBadge.NONE
    order: int = 0
    image_url: Optional[str] = Field(None, alias="imageUrl")
    is_special: Optional[bool] = Field(None, alias="isSpecial")
    calories: Optional[int] = None

    @property
    def effective_price(self) -> int:
        """Price shown to guests (discount wins when present)."""
        return self.discount_price if self.discount_price else self.price

    @property
    def is_rendered(self) -> bool:
        return self.status != DishStatus.HIDDEN


class Promotion(_WireModel):
    id: str
    title: str
    description: str = ""
    image_url: Optional[str] = Field(None, alias="imageUrl")
    animation_style: AnimationStyle = Field(AnimationStyle.SLIDE_UP, alias="animationStyle")
    active: bool = True
    frequency: int = Field(constants.PROMO_DEFAULT_FREQUENCY, ge=0)  # seconds
    duration: int = Field(constants.PROMO_DEFAULT_DURATION, ge=0)  # seconds visible


class MenuDocument(_WireModel):
    """
    The whole menu board state. Always replaced as a unit; `last_updated`
    (epoch ms) is the only version marker.
    """

    categories: List[Category]
    dishes: List[Dish]
    promotions: List[Promotion]
    footer_message: str = Field("", alias="footerMessage")
    theme: AppTheme = AppTheme.DEFAULT
    last_updated: Optional[int] = Field(None, alias="lastUpdated")

    @field_validator("theme", mode="before")
    @classmethod
    def fallback_theme(cls, v):
        # Unknown/empty themes render with the default style
        if isinstance(v, AppTheme):
            return v
        try:
            return AppTheme(v)
        except ValueError:
            return AppTheme.DEFAULT

    # -- views used by the display -------------------------------------------

    def visible_categories(self) -> List[Category]:
        return sorted((c for c in self.categories if c.is_visible), key=lambda c: c.order)

    def dishes_in(self, category_id: str) -> List[Dish]:
        return sorted(
            (d for d in self.dishes if d.category == category_id and d.is_rendered),
            key=lambda d: d.order,
        )

    def grouped(self) -> List[Tuple[Category, List[Dish]]]:
        """
        Visible categories with their rendered dishes, empty sections dropped.
        Dishes pointing at a missing or hidden category never appear.
        """
        groups = []
        for cat in self.visible_categories():
            dishes = self.dishes_in(cat.id)
            if dishes:
                groups.append((cat, dishes))
        return groups

    def with_timestamp(self, stamp: int) -> "MenuDocument":
        return self.model_copy(update={"last_updated": stamp}, deep=True)


REQUIRED_COLLECTIONS = ("categories", "dishes", "promotions")


def is_menu_shape(payload: Any) -> bool:
    """True when the payload carries the three required top-level lists."""
    return isinstance(payload, dict) and all(
        isinstance(payload.get(key), list) for key in REQUIRED_COLLECTIONS
    )


def seed_document(last_updated: Optional[int] = None) -> MenuDocument:
    """Built-in content shown before anything has been published."""
    return MenuDocument.model_validate(
        {
            "categories": constants.SEED_CATEGORIES,
            "dishes": constants.SEED_DISHES,
            "promotions": constants.SEED_PROMOTIONS,
            "footerMessage": constants.SEED_FOOTER_MESSAGE,
            "theme": AppTheme.DEFAULT.value,
            "lastUpdated": last_updated,
        }
    )
