"""
Page store: identity -> PageRecord.

All creation, relocation and removal of records goes through the store
so a page identity maps to at most one live record.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterable

from .models import PageRecord, utcnow

logger = logging.getLogger(__name__)

DEFAULT_HOME_WIKI = "enwiki"


class PageStore:
    """
    Owns every tracked PageRecord.

    Identities are ``wiki + "/" + title``, except on the home wiki where
    the bare title is used.
    """

    def __init__(
        self,
        home_wiki: str = DEFAULT_HOME_WIKI,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.home_wiki = home_wiki
        self._clock = clock
        self._pages: dict[str, PageRecord] = {}

    def __len__(self) -> int:
        return len(self._pages)

    def __contains__(self, page_id: object) -> bool:
        return page_id in self._pages

    def _wiki_key(self, wiki: str | None) -> str:
        if not wiki or wiki == self.home_wiki:
            return ""
        return wiki

    def page_id(self, title: str, wiki: str | None) -> str:
        """Derive the stable identity for a page."""
        prefix = self._wiki_key(wiki)
        return f"{prefix}/{title}" if prefix else title

    def get(self, page_id: str) -> PageRecord | None:
        return self._pages.get(page_id)

    def get_or_create(self, title: str, wiki: str | None) -> PageRecord:
        """Return the record for a page, creating an empty one if unknown."""
        page_id = self.page_id(title, wiki)
        page = self._pages.get(page_id)
        if page is None:
            now = self._clock()
            page = PageRecord(
                id=page_id,
                title=title,
                wiki=self._wiki_key(wiki),
                start=now,
                updated=now,
            )
            self._pages[page_id] = page
        return page

    def rename(self, title: str, wiki: str | None, new_title: str) -> PageRecord:
        """
        Move a record to a new title, keeping its accumulated state.

        When nothing is tracked under the old title an empty record is
        created at the new one.
        """
        old_id = self.page_id(title, wiki)
        new_id = self.page_id(new_title, wiki)

        page = self._pages.pop(old_id, None)
        if page is None:
            return self.get_or_create(new_title, wiki)

        logger.info("rename %s -> %s", old_id, new_id)
        page.id = new_id
        page.title = new_title
        page.touch(self._clock())
        self._pages[new_id] = page
        return page

    def drop(self, title: str, wiki: str | None) -> bool:
        """Remove a page. Returns whether anything was removed."""
        return self.drop_id(self.page_id(title, wiki))

    def drop_id(self, page_id: str) -> bool:
        return self._pages.pop(page_id, None) is not None

    def mark_safe(self, page_id: str, unsafe: bool = False) -> None:
        """Exempt a page from speed/inactivity eviction (or lift the exemption)."""
        page = self._pages.get(page_id)
        if page is not None:
            page.safe = not unsafe

    def protect(self, title: str, wiki: str | None) -> None:
        page = self._pages.get(self.page_id(title, wiki))
        if page is not None:
            page.is_protected = True

    def list_all(self) -> list[PageRecord]:
        """All live records, in no particular order."""
        return list(self._pages.values())

    def load(self, records: Iterable[PageRecord]) -> None:
        """Replace the store contents with restored records."""
        self._pages = {record.id: record for record in records}

    def clear(self) -> None:
        self._pages.clear()
