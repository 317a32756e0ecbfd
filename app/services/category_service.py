"""
Category Service - Maps calendar category labels to display colors.

The display clients color appointments by category. A fixed set of default
categories ships with the service; operators add or recolor categories via
the CATEGORIES setting and, optionally, a JSON file that is picked up
without a restart.

Merge rules:
============
1. Configured categories come first, in configured order (is_default=False)
2. Defaults follow, in declaration order, unless a configured category
   already has the same name (case-insensitive)
3. A name appears once: a repeated configured name keeps its first color

Hot reload:
===========
When CATEGORIES_FILE is set, its modification time is checked at most every
CATEGORIES_RELOAD_SECONDS. A changed file rebuilds the merged set off to the
side and swaps it in with one assignment, so readers see either the old or
the new snapshot. A file that fails to parse leaves the current snapshot in
place.

Usage:
    from app.services.category_service import CategoryService

    service = CategoryService(overrides=settings.CATEGORIES)
    service.get_all_categories()                # merged list for /api/categories
    service.resolve_color(["Staff", "Payday"])  # "#FBB117"
"""

import json
import logging
import os
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from pydantic import TypeAdapter, ValidationError

from app.schemas.category import CategoryDefinition, CategoryOverride


logger = logging.getLogger("eventcal.services.categories")


# ---------------------------------------------------------------------------
# DEFAULT CATEGORIES
# ---------------------------------------------------------------------------
# Declaration order is the order defaults are listed by /api/categories.
DEFAULT_CATEGORY_COLORS: Tuple[Tuple[str, str], ...] = (
    ("Holiday", "#41DC6A"),
    ("Holidays", "#41DC6A"),
    ("Payday", "#FBB117"),
    ("Community Event", "#D82231"),
    ("Giving Back", "#D82231"),
    ("Webinar", "#F47A20"),
    ("Staff Webinar", "#F47A20"),
)

_OVERRIDES_ADAPTER = TypeAdapter(List[CategoryOverride])


# ---------------------------------------------------------------------------
# SNAPSHOT
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CategorySnapshot:
    """
    An immutable, fully built merged category set.

    colors is keyed by the casefolded category name.
    """
    categories: Tuple[CategoryDefinition, ...] = ()
    colors: Dict[str, str] = field(default_factory=dict)

    def color_for(self, label: Optional[str]) -> Optional[str]:
        """Case-insensitive color lookup, None when the label is unknown."""
        if not label:
            return None
        return self.colors.get(label.casefold())


def build_category_snapshot(
    overrides: Iterable[CategoryOverride],
    defaults: Sequence[Tuple[str, str]] = DEFAULT_CATEGORY_COLORS,
) -> CategorySnapshot:
    """
    Merge configured categories with the defaults.

    Args:
        overrides: Configured categories, in configured order
        defaults: (name, color) pairs, in declaration order

    Returns:
        CategorySnapshot with custom entries first, then the remaining defaults
    """
    categories: List[CategoryDefinition] = []
    colors: Dict[str, str] = {}

    for override in overrides:
        key = override.name.casefold()
        if key in colors:
            logger.warning(f"Category '{override.name}' is configured more than once, keeping the first")
            continue
        categories.append(
            CategoryDefinition(name=override.name, html_color=override.html_color, is_default=False)
        )
        colors[key] = override.html_color

    for name, color in defaults:
        key = name.casefold()
        if key in colors:
            continue
        categories.append(CategoryDefinition(name=name, html_color=color, is_default=True))
        colors[key] = color

    return CategorySnapshot(categories=tuple(categories), colors=colors)


def load_overrides_file(path: str) -> List[CategoryOverride]:
    """
    Read category overrides from a JSON file.

    Accepts either a bare list or {"categories": [...]}.

    Raises:
        OSError: If the file cannot be read
        ValueError: If the content is not valid JSON or not a category list
    """
    with open(path, "r", encoding="utf-8") as handle:
        data = json.load(handle)

    if isinstance(data, dict):
        data = data.get("categories", [])

    try:
        return _OVERRIDES_ADAPTER.validate_python(data)
    except ValidationError as e:
        raise ValueError(f"Invalid category file {path}: {e.error_count()} errors") from e


# ---------------------------------------------------------------------------
# CATEGORY SERVICE
# ---------------------------------------------------------------------------

class CategoryService:
    """
    Owns the merged category set for the lifetime of the process.

    Reads never block: they grab the current snapshot reference. Rebuilds
    (construction, reload) happen under a lock and end with a single
    reference swap.
    """

    def __init__(
        self,
        overrides: Optional[Iterable[CategoryOverride]] = None,
        source_path: Optional[str] = None,
        reload_interval_seconds: float = 30.0,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the category service.

        Args:
            overrides: Categories from settings (CATEGORIES)
            source_path: Optional JSON file with more categories (CATEGORIES_FILE)
            reload_interval_seconds: Minimum gap between file checks
            monotonic: Time source for the reload interval (tests inject one)
        """
        self._configured: Tuple[CategoryOverride, ...] = tuple(overrides or ())
        self._source_path = source_path
        self._reload_interval = reload_interval_seconds
        self._monotonic = monotonic

        self._lock = threading.Lock()
        self._source_mtime: Optional[float] = None
        self._file_overrides: Tuple[CategoryOverride, ...] = ()
        self._last_check = monotonic()

        if source_path:
            self._read_source(initial=True)

        self._snapshot = build_category_snapshot(self._configured + self._file_overrides)

        logger.info(
            f"Category service initialized with {len(self._snapshot.categories)} categories",
            extra={"source_path": source_path},
        )

    # -------------------------------------------------------------------------
    # READ OPERATIONS
    # -------------------------------------------------------------------------

    def snapshot(self) -> CategorySnapshot:
        """Current merged set (checks the source file first when due)."""
        self._maybe_reload()
        return self._snapshot

    def get_all_categories(self) -> List[CategoryDefinition]:
        """
        Merged categories: configured ones first, then remaining defaults.

        Returns:
            List of CategoryDefinition in display order
        """
        return list(self.snapshot().categories)

    def color_for(self, label: Optional[str]) -> Optional[str]:
        """
        Color for one category label (case-insensitive).

        Returns:
            HTML color, or None if the label is not a known category
        """
        return self.snapshot().color_for(label)

    def resolve_color(self, labels: Optional[Iterable[str]]) -> str:
        """
        Color for an event's category labels.

        The first label (in the event's order) that is a known category wins.

        Returns:
            HTML color, or "" when no label matches
        """
        if not labels:
            return ""
        snapshot = self.snapshot()
        for label in labels:
            color = snapshot.color_for(label)
            if color is not None:
                return color
        return ""

    # -------------------------------------------------------------------------
    # RELOAD
    # -------------------------------------------------------------------------

    def reload(self) -> bool:
        """
        Re-read the source file and rebuild the merged set now.

        Returns:
            True if a new snapshot was installed
        """
        if not self._source_path:
            return False
        with self._lock:
            self._last_check = self._monotonic()
            return self._reload_locked(force=True)

    def _maybe_reload(self) -> None:
        if not self._source_path:
            return
        if self._monotonic() - self._last_check < self._reload_interval:
            return
        # Another thread is already checking; keep serving the current snapshot
        if not self._lock.acquire(blocking=False):
            return
        try:
            self._last_check = self._monotonic()
            self._reload_locked(force=False)
        finally:
            self._lock.release()

    def _reload_locked(self, force: bool) -> bool:
        try:
            mtime = os.path.getmtime(self._source_path)
        except OSError as e:
            logger.error(f"Category file unavailable, keeping current categories: {e}")
            return False

        if not force and mtime == self._source_mtime:
            return False

        if not self._read_source(initial=False):
            return False

        self._snapshot = build_category_snapshot(self._configured + self._file_overrides)
        logger.info(f"Categories reloaded: {len(self._snapshot.categories)} categories")
        return True

    def _read_source(self, initial: bool) -> bool:
        try:
            mtime = os.path.getmtime(self._source_path)
            overrides = load_overrides_file(self._source_path)
        except (OSError, ValueError) as e:
            if initial:
                logger.error(f"Could not load category file, using configured categories only: {e}")
            else:
                logger.error(f"Could not reload category file, keeping current categories: {e}")
            return False

        self._file_overrides = tuple(overrides)
        self._source_mtime = mtime
        return True
