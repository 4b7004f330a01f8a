from enum import Enum

from swipematch.core.config import get_settings
from swipematch.core.errors import InvalidOperation


class Category(str, Enum):
    """Catalog categories a user can swipe in."""
    HIKES = "hikes"
    MOVIES = "movies"
    TV = "tv"
    RESTAURANTS = "restaurants"


CATEGORY_LABELS = {
    Category.HIKES: "Hikes",
    Category.MOVIES: "Movies",
    Category.TV: "TV Shows",
    Category.RESTAURANTS: "Restaurants",
}


def validate_category(category: str | Category | None) -> Category:
    """Return the Category for ``category`` or raise InvalidOperation if it is missing or disabled."""
    if not category:
        raise InvalidOperation("Category is required", user_message="Please pick a category.")
    try:
        value = Category(category.value if isinstance(category, Category) else str(category).lower())
    except ValueError:
        raise InvalidOperation(f"Unknown category: {category}", user_message="Unknown category.")

    if value.value not in get_settings().ENABLED_CATEGORIES:
        raise InvalidOperation(
            f"Category is disabled: {value.value}",
            user_message=f"{CATEGORY_LABELS[value]} are not available right now.",
        )
    return value
