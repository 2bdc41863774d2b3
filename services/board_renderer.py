"""
Text rendering of the menu board for terminals and headless displays.
"""
from datetime import datetime
from typing import List, Optional

from core import constants
from core.utils import get_now, greeting_for
from models.menu import Dish, DishBadge, DishStatus, MenuDocument, Promotion, seed_document


def format_price(amount: int) -> str:
    return f"{amount} {constants.CURRENCY_SYMBOL}"


def format_dish(dish: Dish) -> str:
    """One board line: name, badge, price (old price struck through when discounted)."""
    parts = [dish.name]
    if dish.badge != DishBadge.NONE:
        parts.append(f"[{constants.BADGE_LABELS.get(dish.badge.value, dish.badge.value)}]")
    if dish.status == DishStatus.SOLD_OUT:
        parts.append(f"({constants.SOLD_OUT_LABEL})")

    if dish.discount_price:
        price = f"~{format_price(dish.price)}~ {format_price(dish.effective_price)}"
    else:
        price = format_price(dish.price)
    return f"  {' '.join(parts)} .... {price}"


def format_promotion(promo: Promotion) -> List[str]:
    lines = [f">>> {promo.title} <<<"]
    if promo.description:
        lines.append(f"    {promo.description}")
    return lines


def render_board(
    document: MenuDocument,
    now: Optional[datetime] = None,
    promotion: Optional[Promotion] = None,
) -> List[str]:
    """
    Renders the board as lines of text.

    Only visible categories with at least one rendered dish appear, in
    category order; dishes whose category is missing or hidden are skipped.
    """
    now = now or get_now()
    lines = [
        f"{constants.BOARD_TITLE}  |  {constants.THEME_LABELS.get(document.theme.value, document.theme.value)}",
        f"{greeting_for(now.hour)}! {now.strftime('%H:%M')}",
        "",
    ]

    for category, dishes in document.grouped():
        lines.append(category.name.upper())
        for dish in dishes:
            lines.append(format_dish(dish))
            if dish.description:
                lines.append(f"    {dish.description}")
        lines.append("")

    if promotion is not None:
        lines.extend(format_promotion(promotion))
        lines.append("")

    lines.append(document.footer_message or seed_document().footer_message)
    return lines


def content_height(lines: List[str], line_height: int = constants.BOARD_LINE_HEIGHT) -> float:
    """Pixel height of rendered board lines (used to drive the virtual viewport)."""
    return float(len(lines) * line_height)
