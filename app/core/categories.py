"""
Category icon table shared by the dashboard category rows and the insights.

Keys are lower-cased category names; lookups are case-insensitive.
Icons are SF Symbol names, colors are the client's named color tags.
"""

from typing import NamedTuple


class CategoryStyle(NamedTuple):
    icon: str
    color: str


DEFAULT_CATEGORY_STYLE = CategoryStyle("tag.fill", "gray")

# Name of the synthetic category that collects receipt taxes
TAX_CATEGORY = "Tax"

_CATEGORY_GROUPS: list[tuple[tuple[str, ...], CategoryStyle]] = [
    (("rent", "housing"), CategoryStyle("house.fill", "red")),
    (("bills", "utilities"), CategoryStyle("creditcard.fill", "blue")),
    (("groceries", "food"), CategoryStyle("cart.fill", "green")),
    (("internet", "wifi"), CategoryStyle("wifi", "purple")),
    (("tax",), CategoryStyle("dollarsign.circle.fill", "orange")),
    (("transport", "travel"), CategoryStyle("car.fill", "yellow")),
    (("entertainment", "fun"), CategoryStyle("gamecontroller.fill", "pink")),
    (("shopping", "clothing"), CategoryStyle("bag.fill", "cyan")),
    (("health", "medical"), CategoryStyle("cross.case.fill", "mint")),
    (("education", "school"), CategoryStyle("book.fill", "teal")),
    (("subscriptions", "services"), CategoryStyle("person.crop.circle.fill", "indigo")),
    (("dining",), CategoryStyle("fork.knife", "pink")),
    (("other",), DEFAULT_CATEGORY_STYLE),
]

CATEGORY_ICON_TABLE: dict[str, CategoryStyle] = {
    name: style for names, style in _CATEGORY_GROUPS for name in names
}


def get_category_style(category: str) -> CategoryStyle:
    """Icon and color for a category, falling back to the default tag style."""
    return CATEGORY_ICON_TABLE.get(category.lower(), DEFAULT_CATEGORY_STYLE)
