"""
Aggregation engine.

Folds one event at a time into the page store. Edits update counters
and attribution on the target page; control (log) events rename,
protect or drop pages.
"""

from __future__ import annotations

import fnmatch
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Mapping

from .classifier import (
    is_anonymous_editor,
    is_bot_edit,
    is_fixup_edit,
    is_revert_edit,
    scan_comment_flags,
)
from .events import MAIN_NAMESPACE, LogAction, RawEvent
from .models import PageRecord, utcnow
from .store import PageStore

logger = logging.getLogger(__name__)

WILDCARD_PROJECT = "*"

# Deleted title inside a log comment: &quot;[[Title]]&quot; or &quot;Title&quot;
DELETED_TITLE_PATTERN = re.compile(
    r'(?:&quot;|")\[\[(.+?)\]\](?:&quot;|")|(?:&quot;|")(.+?)(?:&quot;|")'
)


@dataclass(frozen=True)
class EditOutcome:
    """Classification of an applied edit."""

    page: PageRecord
    is_revert: bool
    is_bot: bool
    is_anonymous: bool


def extract_deleted_title(comment: str) -> str | None:
    """Pull the deleted page title out of a delete log comment."""
    match = DELETED_TITLE_PATTERN.search(comment or "")
    if not match:
        return None
    return match.group(1) or match.group(2) or None


def _has_explicit_length(params: Any) -> bool:
    if isinstance(params, Mapping):
        return bool(params.get("length"))
    if isinstance(params, list):
        return len(params) > 0
    return False


class AggregationEngine:
    """Applies classified events to a PageStore."""

    def __init__(
        self,
        store: PageStore,
        project: str = WILDCARD_PROJECT,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.project = project
        self._clock = clock

    # --- Filtering ---

    def matches_project(self, event: RawEvent) -> bool:
        """
        Whether the event belongs to the configured project.

        Events that do not name their server cannot be filtered and are
        accepted.
        """
        if self.project == WILDCARD_PROJECT or event.server_name is None:
            return True
        return fnmatch.fnmatchcase(event.server_name, self.project)

    def accepts(self, event: RawEvent) -> bool:
        """Whether the event should reach the engine at all."""
        if event.namespace != MAIN_NAMESPACE:
            return False
        if not self.matches_project(event):
            return False
        if not event.is_control and is_fixup_edit(event.comment):
            return False
        return True

    # --- Edits ---

    def apply_edit(self, event: RawEvent) -> EditOutcome:
        """Fold a single content edit into its page."""
        page = self.store.get_or_create(event.title, event.wiki)

        if event.is_new_page:
            page.is_new = True

        revert = is_revert_edit(event.comment)
        bot = is_bot_edit(event)
        delta = event.delta

        if revert:
            # Reverts are counted apart from edits but still move the size.
            page.reverts += 1
            page.bytes_changed += delta
        elif not bot:
            page.edits += 1
            page.bytes_changed += delta

        flags = scan_comment_flags(event.comment)
        if flags.notability:
            page.notability_flags += 1
        if flags.volatility:
            page.volatile_flags += 1

        anonymous = is_anonymous_editor(event.user)
        if not bot and not revert and event.user:
            page.attribute(event.user, anonymous=anonymous)

        page.touch(self._clock())
        return EditOutcome(page=page, is_revert=revert, is_bot=bot, is_anonymous=anonymous)

    # --- Control events ---

    def apply_control(self, event: RawEvent) -> bool:
        """
        Apply a structural log event.

        Returns True when the store was asked to change, False for
        actions that are ignored or could not be resolved.
        """
        try:
            action = LogAction(event.log_action)
        except ValueError:
            logger.debug("ignoring log action %r on %s", event.log_action, event.title)
            return False

        params = event.log_params

        if action is LogAction.MOVE:
            target = params.get("target") if isinstance(params, Mapping) else None
            if not isinstance(target, str) or not target:
                logger.debug("move of %s without target", event.title)
                return False
            self.store.rename(event.title, event.wiki, target)
            return True

        if action is LogAction.PROTECT:
            self.store.protect(event.title, event.wiki)
            return True

        # LogAction.DELETE
        if _has_explicit_length(params):
            return False
        deleted = extract_deleted_title(event.log_action_comment)
        if deleted is None:
            return False
        logger.info("delete %s (%s)", deleted, event.wiki or "home")
        self.store.drop(deleted, event.wiki)
        return True
