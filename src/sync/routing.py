"""Job number prefix -> destination folder routing."""

from collections.abc import Mapping

from src.sync.schemas import DestinationCategory, DestinationFolder

# Jobs starting with 1 (and anything non-numeric) are deliberately unrouted
PREFIX_CATEGORIES: dict[str, DestinationCategory] = {
    "2": DestinationCategory.PROJECT_JOBS,
    "3": DestinationCategory.PROJECT_JOBS,
    "4": DestinationCategory.PROJECT_JOBS,
    "5": DestinationCategory.PROJECT_JOBS,
    "7": DestinationCategory.SURVEY,
    "8": DestinationCategory.SURVEY,
    "6": DestinationCategory.SURVEYORS,
    "9": DestinationCategory.SURVEYORS,
}


def category_for(identifier: str) -> DestinationCategory | None:
    """Category for a job number, or None if its prefix is not routed."""
    if not identifier:
        return None
    return PREFIX_CATEGORIES.get(identifier[0])


def select_destination(
    identifier: str,
    destinations: Mapping[DestinationCategory, DestinationFolder],
) -> str | None:
    """
    Parent path a job's folder belongs under.

    None when the prefix is unrouted or its category never resolved.
    """
    category = category_for(identifier)
    if category is None:
        return None
    folder = destinations.get(category)
    return folder.path if folder else None
