"""Category table: which unread emails feed which list.

One ``CategoryRule`` per list. The poller iterates this table uniformly
instead of branching per category.

The shopping rule is deliberately broad ("add", "new", "list" match a lot
of ordinary subjects). Matching messages are deleted after ingestion even
when they yield no items, so unrelated unread mail with such subjects will
be consumed.
"""

from imap_tools import AND, OR

from mirror.schemas.lists import DEFAULT_CATEGORY, CategoryRule, ListCategory

CATEGORY_RULES: dict[ListCategory, CategoryRule] = {
    ListCategory.SHOPPING: CategoryRule(
        category=ListCategory.SHOPPING,
        subject_keywords=("shopping list", "add", "shopping", "list", "new"),
    ),
    ListCategory.AMAZON: CategoryRule(
        category=ListCategory.AMAZON,
        subject_keywords=("amazon",),
    ),
    ListCategory.COSTCO: CategoryRule(
        category=ListCategory.COSTCO,
        subject_keywords=("costco",),
    ),
}


def rule_for(category: ListCategory) -> CategoryRule:
    """Return the rule for a category, falling back to the default list's rule."""
    return CATEGORY_RULES.get(category, CATEGORY_RULES[DEFAULT_CATEGORY])


def build_search_criteria(rule: CategoryRule) -> AND:
    """Render a rule as imap-tools search criteria: UNSEEN AND (SUBJECT k1 OR k2 ...)."""
    keywords = list(rule.subject_keywords)
    if len(keywords) == 1:
        return AND(seen=False, subject=keywords[0])
    return AND(OR(subject=keywords), seen=False)


def categories_for_subject(subject: str | None) -> list[ListCategory]:
    """List every category whose rule matches a subject (diagnostics and tests)."""
    return [category for category, rule in CATEGORY_RULES.items() if rule.matches_subject(subject)]


def parse_category(value: str) -> ListCategory:
    """Resolve a user-supplied category name.

    Raises:
        ValueError: If the name is not a known category.
    """
    try:
        return ListCategory(value.strip().lower())
    except ValueError:
        raise ValueError(f"Unknown list category: {value}") from None
