"""
Session-scoped cache of directory people, categories, and locations.

ReferenceDataCache is created once per session and shared by reference with
every ticket orchestrator of that session. It exists so reference data is
fetched once per (API base, token) pair instead of once per consumer.

Rules:
- load() is a no-op when the cache key matches and the cache holds data,
  and while another load is in flight.
- Collections are replaced whole, never merged.
- If the people fetch fails (or returns nobody) the people list falls back
  to a fixed, alphabetically sorted list of names so assignment by name
  keeps working; ids for those names are resolved by live search at submit
  time.
- A failed load does not commit its key and forgets the previous one, so
  the next load() refetches.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Generic, Protocol, TypeVar

from maintenance_desk.config import DEFAULT_FALLBACK_PEOPLE
from maintenance_desk.types import Category, Location, Person, Subcategory

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ReferenceSource(Protocol):
    """The subset of MaintenanceApi the cache fetches from."""

    async def search_persons_by_department(self, department: str, limit: int = 50) -> list[Person]:
        ...

    async def list_categories(self, limit: int = 200) -> list[Category]:
        ...

    async def list_locations(self, page: int = 1, limit: int = 50, q: str = "") -> list[Location]:
        ...


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A fetched collection and the cache key it was fetched under."""

    value: T
    key: str


def make_cache_key(api_base: str, token: str | None) -> str:
    """Render the (API base, token) pair as the cache key."""
    return f"{api_base}-{token or 'no-token'}"


def _full_name_key(name: str) -> str:
    return " ".join(name.split()).casefold()


class ReferenceDataCache:
    """
    Memoized people, categories, and locations for one session.

    Example:
        cache = ReferenceDataCache(source=api)
        await cache.load(settings.api_base, token)
        jane = cache.find_person("jane doe")
    """

    def __init__(
        self,
        source: ReferenceSource,
        department: str = "MAINTENANCE",
        persons_limit: int = 50,
        categories_limit: int = 200,
        locations_limit: int = 50,
        fallback_people: list[str] | None = None,
    ) -> None:
        self.source = source
        self.department = department
        self.persons_limit = persons_limit
        self.categories_limit = categories_limit
        self.locations_limit = locations_limit
        self.fallback_people = sorted(
            fallback_people if fallback_people is not None else DEFAULT_FALLBACK_PEOPLE,
            key=str.casefold,
        )

        self._persons: CacheEntry[list[Person]] | None = None
        self._categories: CacheEntry[list[Category]] | None = None
        self._locations: CacheEntry[list[Location]] | None = None
        self._people_list: list[str] = []
        self._key: str | None = None
        self._loading = False
        self._ready = False
        self._disposed = False
        self.error: str | None = None

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def cache_key(self) -> str | None:
        return self._key

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def ready(self) -> bool:
        """True once a load has completed, successfully or degraded."""
        return self._ready

    @property
    def is_empty(self) -> bool:
        return not (self.persons or self.categories or self.locations)

    @property
    def persons(self) -> list[Person]:
        return self._persons.value if self._persons else []

    @property
    def categories(self) -> list[Category]:
        return self._categories.value if self._categories else []

    @property
    def locations(self) -> list[Location]:
        return self._locations.value if self._locations else []

    @property
    def people_list(self) -> list[str]:
        """Sorted display names offered by the assignment picker."""
        return list(self._people_list)

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    async def load(self, api_base: str, token: str | None) -> bool:
        """
        Fetch reference data for (api_base, token) unless already cached.

        People, categories, and locations are fetched concurrently.

        Returns:
            True if a fetch was performed, False if the call was a no-op.

        Raises:
            RuntimeError: If the cache has been disposed.
        """
        if self._disposed:
            raise RuntimeError("ReferenceDataCache has been disposed")

        key = make_cache_key(api_base, token)
        if self._key == key and not self.is_empty:
            return False
        if self._loading:
            logger.debug("Reference data load already in flight, skipping")
            return False

        self._loading = True
        self.error = None
        try:
            persons, categories, locations = await asyncio.gather(
                self.source.search_persons_by_department(self.department, self.persons_limit),
                self.source.list_categories(self.categories_limit),
                self.source.list_locations(limit=self.locations_limit),
                return_exceptions=True,
            )
            failures = self._apply(key, persons, categories, locations)
        finally:
            self._loading = False

        self._ready = True
        if failures:
            # Collections may now mix keys, so no key matches until a clean load
            self._key = None
            self.error = "Failed to load " + ", ".join(failures)
            logger.error(f"Reference data load degraded: {self.error}")
        else:
            self._key = key
            logger.info(
                f"Reference data loaded: {len(self.persons)} people, "
                f"{len(self.categories)} categories, {len(self.locations)} locations"
            )
        return True

    def _apply(self, key: str, persons, categories, locations) -> list[str]:
        failures = []
        for name, result in (("people", persons), ("categories", categories), ("locations", locations)):
            if isinstance(result, BaseException) and not isinstance(result, Exception):
                raise result
            if isinstance(result, Exception):
                logger.error(f"Failed to fetch {name}: {result}")
                failures.append(name)

        if "people" in failures:
            self._persons = None
            self._people_list = list(self.fallback_people)
        else:
            self._persons = CacheEntry(value=list(persons), key=key)
            names = sorted(
                (p.full_name for p in persons if p.full_name), key=str.casefold
            )
            if not names:
                logger.warning("Directory returned no people, using fallback list")
            self._people_list = names or list(self.fallback_people)

        if "categories" not in failures:
            self._categories = CacheEntry(value=list(categories), key=key)
        if "locations" not in failures:
            self._locations = CacheEntry(value=list(locations), key=key)
        return failures

    def clear_cache(self) -> None:
        """Reset to an empty, keyless state so the next load() refetches."""
        self._persons = None
        self._categories = None
        self._locations = None
        self._people_list = []
        self._key = None
        self._ready = False
        self.error = None

    def dispose(self) -> None:
        """Clear the cache and refuse further loads."""
        self.clear_cache()
        self._disposed = True

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def find_person(self, full_name: str) -> Person | None:
        """Case-insensitive exact match on "first last"; first match wins."""
        wanted = _full_name_key(full_name)
        for person in self.persons:
            if _full_name_key(person.full_name) == wanted:
                return person
        return None

    def find_category(self, name: str) -> Category | None:
        for category in self.categories:
            if category.name == name:
                return category
        return None

    def find_subcategory(self, display_name: str) -> tuple[Category, Subcategory] | None:
        """
        Find a subcategory by display name (or name) with its owning category.

        Categories are searched in order; the first owner wins.
        """
        for category in self.categories:
            for sub in category.subcategories:
                if display_name in (sub.display_name, sub.name):
                    return category, sub
        return None

    def find_location(self, location_id: str) -> Location | None:
        for location in self.locations:
            if location.id == location_id:
                return location
        return None
