"""
Category Taxonomy

The closed set of main categories and their subcategories.

DESIGN DECISION: Categories are configuration, not free text.
Validation, grouping and the filter dropdowns all read the same taxonomy,
and nothing in the tracker mutates it at runtime.
"""

import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


ALL = "All"
TOTAL = "Total"
DEFAULT_COLOR = "#007aff"
DEFAULT_EMOJI = "•"


class CategoryDefinition(BaseModel):
    """One main category with its display attributes."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    name: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Main category name"
    )
    subcategories: tuple[str, ...] = Field(
        default=(),
        description="Allowed subcategory names (may be empty)"
    )
    color: str = Field(
        default=DEFAULT_COLOR,
        pattern="^#[0-9A-Fa-f]{6}$",
        description="Chart color; subcategories inherit it"
    )
    emoji: str = Field(
        default=DEFAULT_EMOJI,
        description="Prefix used in list labels"
    )


class CategoryTaxonomy(BaseModel):
    """
    Ordered, read-only category configuration.

    Order matters: it is the order of the add form, the filter dropdowns,
    the "Total" comparison datasets and the annual report rows.
    """

    model_config = ConfigDict(frozen=True)

    categories: tuple[CategoryDefinition, ...]

    @model_validator(mode='after')
    def validate_unique_names(self) -> 'CategoryTaxonomy':
        """Main category names must be unique."""
        names = [c.name for c in self.categories]
        if len(names) != len(set(names)):
            raise ValueError("Duplicate main category names in taxonomy")
        return self

    @classmethod
    def from_file(cls, path: Path) -> 'CategoryTaxonomy':
        """
        Load a taxonomy from JSON.

        Expected shape: [{"name": ..., "subcategories": [...], "color": ..., "emoji": ...}, ...]
        """
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls(categories=tuple(CategoryDefinition(**item) for item in raw))

    def _get(self, main: str) -> Optional[CategoryDefinition]:
        for category in self.categories:
            if category.name == main:
                return category
        return None

    def main_categories(self) -> list[str]:
        return [c.name for c in self.categories]

    def subcategories(self, main: str) -> list[str]:
        """Subcategories of `main`; empty for unknown or sub-less mains."""
        category = self._get(main)
        return list(category.subcategories) if category else []

    def is_known(self, main: str) -> bool:
        return self._get(main) is not None

    def accepts(self, main: str, sub: Optional[str]) -> bool:
        """
        Check a (main, sub) pair.

        A sub is only acceptable when `main` has subcategories and the sub
        is one of them. No sub is always acceptable for a known main.
        """
        category = self._get(main)
        if category is None:
            return False
        if sub is None:
            return True
        return sub in category.subcategories

    def main_for_sub(self, sub: str) -> Optional[str]:
        """First main category owning `sub`."""
        for category in self.categories:
            if sub in category.subcategories:
                return category.name
        return None

    def label(self, main: str, sub: Optional[str] = None) -> str:
        """List label, e.g. "🍔 Food – Supermarket"."""
        category = self._get(main)
        emoji = category.emoji if category else DEFAULT_EMOJI
        return f"{emoji} {main}{' – ' + sub if sub else ''}"

    def color_for(self, label: str, parents: Optional[dict[str, str]] = None) -> str:
        """
        Chart color for a grouping label.

        Main labels use their own color. Sub labels inherit the parent's,
        found through `parents` first and then the taxonomy.
        """
        category = self._get(label)
        if category:
            return category.color
        parent = (parents or {}).get(label) or self.main_for_sub(label)
        parent_category = self._get(parent) if parent else None
        return parent_category.color if parent_category else DEFAULT_COLOR

    def main_filter_options(self) -> list[str]:
        return [ALL] + self.main_categories()

    def sub_filter_options(self, main_filter: str = ALL) -> list[str]:
        """
        Options for the subcategory filter.

        A specific main shows only its own subs. "All" shows every sub
        across the taxonomy, de-duplicated and sorted.
        """
        if main_filter and main_filter != ALL:
            return [ALL] + self.subcategories(main_filter)
        all_subs = {sub for c in self.categories for sub in c.subcategories}
        return [ALL] + sorted(all_subs)

    def compare_options(self) -> list[str]:
        return [TOTAL] + self.main_categories()


DEFAULT_TAXONOMY = CategoryTaxonomy(categories=(
    CategoryDefinition(name="Rent", color="#ff3b30", emoji="🏠"),
    CategoryDefinition(
        name="Food",
        subcategories=("Restaurant", "Snack", "Supermarket"),
        color="#ff9500",
        emoji="🍔",
    ),
    CategoryDefinition(
        name="Transport",
        subcategories=("Fuel", "Electric", "Parking", "Toll", "Uber"),
        color="#ffcc00",
        emoji="🚗",
    ),
    CategoryDefinition(
        name="Subscriptions",
        subcategories=("Netflix", "Prime", "HBO"),
        color="#34c759",
        emoji="🎬",
    ),
    CategoryDefinition(name="Shopping", color="#5ac8fa", emoji="🛍️"),
    CategoryDefinition(name="Health", color="#5856d6", emoji="🩺"),
    CategoryDefinition(
        name="Insurance",
        subcategories=("House", "Car"),
        color="#af52de",
        emoji="🛡️",
    ),
    CategoryDefinition(
        name="Utilities",
        subcategories=("Water", "Electricity", "Gas", "Net&TV", "Condominium"),
        color="#8B5A2B",
        emoji="💡",
    ),
    CategoryDefinition(name="Entertainment", color="#8e8e93", emoji="🎉"),
    CategoryDefinition(name="Travel", color="#00c7be", emoji="✈️"),
    CategoryDefinition(name="Others", color="#000000", emoji="✨"),
))
