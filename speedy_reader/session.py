"""
Reader session state.

Holds what the interactive loop shows (cached feeds and articles, selection,
filter, input mode, summary state) and applies key actions to it. Network work
is started as background tasks; `tick` polls their results once per loop pass.
"""

import asyncio
import logging
import time
import webbrowser
from enum import Enum
from pathlib import Path
from typing import Callable
from urllib.parse import quote

from .bookmarks import RaindropClient, merge_tags
from .database import Database
from .database.models import DBArticle, DBFeed, DBSummary
from .exceptions import OpmlError, ReaderError
from .keymap import Action, ActionKind, Mode
from .services.feed_service import FeedService
from .tasks import Completion, CompletionOutcome, SubmitStatus, SummaryDispatcher

logger = logging.getLogger(__name__)

# Seconds an article must stay selected before it counts as read
READ_DELAY = 2.0

SPINNER_FRAMES = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"


class ArticleFilter(Enum):
    UNREAD = "Unread"
    STARRED = "Starred"
    ALL = "All"

    def cycle(self) -> "ArticleFilter":
        members = list(ArticleFilter)
        return members[(members.index(self) + 1) % len(members)]

    def matches(self, article: DBArticle) -> bool:
        if self is ArticleFilter.UNREAD:
            return not article.is_read
        if self is ArticleFilter.STARRED:
            return article.is_starred
        return True


class SummaryStatus(Enum):
    NOT_GENERATED = "not_generated"
    GENERATING = "generating"
    GENERATED = "generated"
    FAILED = "failed"
    NO_API_KEY = "no_api_key"


class Session:
    """State machine behind the interactive reader."""

    def __init__(
        self,
        db: Database,
        feed_service: FeedService,
        dispatcher: SummaryDispatcher,
        bookmarks: RaindropClient | None = None,
        default_tags: list[str] | None = None,
        refresh_interval_minutes: int = 0,
        clock: Callable[[], float] = time.monotonic,
        opener: Callable[[str], bool] = webbrowser.open,
    ):
        self.db = db
        self.feed_service = feed_service
        self.dispatcher = dispatcher
        self.bookmarks = bookmarks
        self.default_tags = list(default_tags or [])
        self.refresh_interval = refresh_interval_minutes * 60
        self.clock = clock
        self.opener = opener

        # Read-through caches, refreshed only by explicit reloads
        self.feeds: list[DBFeed] = []
        self.articles: list[DBArticle] = []

        self.mode = Mode.NORMAL
        self.filter = ArticleFilter.UNREAD
        self.selected_index = 0
        self.input_buffer = ""

        self.current_summary: DBSummary | None = None
        self.summary_status = SummaryStatus.NOT_GENERATED
        self.is_bookmarked = False
        self.status_message: str | None = None
        self.spinner_index = 0

        self._selection_time: float | None = None
        self._last_refresh: float | None = None
        self._refresh_task: asyncio.Task | None = None
        self._discovery_task: asyncio.Task | None = None
        self._import_task: asyncio.Task | None = None
        self._bookmark_task: asyncio.Task | None = None
        # Set when feeds were added while a refresh that predates them was running
        self._refresh_queued = False
        self._deleted: list[DBArticle] = []

    # ─────────────────────────────────────────────────────────────
    # Views
    # ─────────────────────────────────────────────────────────────

    @property
    def filtered_articles(self) -> list[DBArticle]:
        return [a for a in self.articles if self.filter.matches(a)]

    @property
    def selected_article(self) -> DBArticle | None:
        articles = self.filtered_articles
        if 0 <= self.selected_index < len(articles):
            return articles[self.selected_index]
        return None

    @property
    def unread_count(self) -> int:
        return sum(1 for a in self.articles if not a.is_read)

    @property
    def is_refreshing(self) -> bool:
        return self.feed_service.is_refreshing

    @property
    def is_searching(self) -> bool:
        return _running(self._discovery_task)

    @property
    def is_importing(self) -> bool:
        return _running(self._import_task)

    @property
    def is_saving_bookmark(self) -> bool:
        return _running(self._bookmark_task)

    @property
    def spinner(self) -> str:
        return SPINNER_FRAMES[self.spinner_index % len(SPINNER_FRAMES)]

    # ─────────────────────────────────────────────────────────────
    # Loading
    # ─────────────────────────────────────────────────────────────

    def load(self):
        """Load feeds and articles from the store and select the first article."""
        self.feeds = self.db.get_feeds()
        self.articles = self.db.get_articles()
        self.selected_index = 0
        self.on_selection_changed()

    def reload_articles(self):
        """Reload articles from the store, keeping the selection in range."""
        previous = self.selected_article
        self.articles = self.db.get_articles()
        self._clamp_selection()
        current = self.selected_article
        if (previous.id if previous else None) != (current.id if current else None):
            self.on_selection_changed()

    def reload_feeds(self):
        self.feeds = self.db.get_feeds()

    def _clamp_selection(self):
        count = len(self.filtered_articles)
        if count == 0:
            self.selected_index = 0
        elif self.selected_index >= count:
            self.selected_index = count - 1

    def on_selection_changed(self):
        """Reset per-article state and arm the read timer for the new selection."""
        self.current_summary = None
        self.summary_status = SummaryStatus.NOT_GENERATED
        self.is_bookmarked = False
        self._selection_time = self.clock()

        article = self.selected_article
        if article is None:
            return

        self.is_bookmarked = self.db.is_bookmarked(article.id)
        cached = self.db.get_summary(article.id)
        if cached:
            self.current_summary = cached
            self.summary_status = SummaryStatus.GENERATED
        elif self.dispatcher.pending_article_id == article.id:
            self.summary_status = SummaryStatus.GENERATING

    # ─────────────────────────────────────────────────────────────
    # Actions
    # ─────────────────────────────────────────────────────────────

    def handle_action(self, action: Action) -> bool:
        """Apply an action. Returns True when the reader should quit."""
        kind = action.kind

        if kind is ActionKind.QUIT:
            return True
        elif kind is ActionKind.MOVE_UP:
            self._move_to(self.selected_index - 1)
        elif kind is ActionKind.MOVE_DOWN:
            self._move_to(self.selected_index + 1)
        elif kind is ActionKind.MOVE_TO_TOP:
            self._move_to(0)
        elif kind is ActionKind.MOVE_TO_BOTTOM:
            self._move_to(len(self.filtered_articles) - 1)
        elif kind is ActionKind.SELECT:
            self.generate_summary()
        elif kind is ActionKind.REGENERATE:
            self.current_summary = None
            self.summary_status = SummaryStatus.NOT_GENERATED
            self.generate_summary(use_cache=False)
        elif kind is ActionKind.REFRESH:
            self.start_refresh()
        elif kind is ActionKind.TOGGLE_READ:
            self._toggle_read()
        elif kind is ActionKind.TOGGLE_STAR:
            self._toggle_star()
        elif kind is ActionKind.OPEN_IN_BROWSER:
            self._open_in_browser()
        elif kind is ActionKind.EMAIL:
            self._email_article()
        elif kind is ActionKind.BOOKMARK:
            self._start_bookmark_input()
        elif kind is ActionKind.CYCLE_FILTER:
            self.filter = self.filter.cycle()
            self.selected_index = 0
            self.on_selection_changed()
        elif kind is ActionKind.DELETE_ARTICLE:
            self.delete_selected_article()
        elif kind is ActionKind.UNDELETE:
            self.undelete_article()
        elif kind is ActionKind.DELETE_FEED:
            self.delete_selected_feed()
        elif kind is ActionKind.ADD_FEED:
            self._enter_input(Mode.FEED_INPUT)
        elif kind is ActionKind.IMPORT_OPML:
            self._enter_input(Mode.OPML_IMPORT_INPUT)
        elif kind is ActionKind.EXPORT_OPML:
            self._enter_input(Mode.OPML_EXPORT_INPUT)
        elif kind is ActionKind.SHOW_HELP:
            self.mode = Mode.HELP
        elif kind is ActionKind.HIDE_HELP:
            self.mode = Mode.NORMAL
        elif kind is ActionKind.INPUT_CHAR:
            self.input_buffer += action.char or ""
        elif kind is ActionKind.INPUT_BACKSPACE:
            self.input_buffer = self.input_buffer[:-1]
        elif kind is ActionKind.INPUT_CANCEL:
            self._leave_input()
        elif kind is ActionKind.INPUT_CONFIRM:
            self._confirm_input()

        return False

    def _move_to(self, index: int):
        count = len(self.filtered_articles)
        if count == 0:
            return
        index = max(0, min(index, count - 1))
        if index != self.selected_index:
            self.selected_index = index
            self.on_selection_changed()

    def generate_summary(self, use_cache: bool = True):
        """Show the selected article's summary, generating it if needed."""
        article = self.selected_article
        if article is None:
            return

        result = self.dispatcher.submit(article, use_cache=use_cache)
        if result.status is SubmitStatus.NO_API_KEY:
            self.summary_status = SummaryStatus.NO_API_KEY
        elif result.status is SubmitStatus.CACHED:
            self.current_summary = result.summary
            self.summary_status = SummaryStatus.GENERATED
        else:
            # Local is_read stays as-is so the article remains in the unread view
            self.current_summary = None
            self.summary_status = SummaryStatus.GENERATING

    def start_refresh(self) -> bool:
        """Start a background refresh. Returns False if one is already running."""
        task = self.feed_service.schedule_refresh()
        self._last_refresh = self.clock()
        if task is None:
            self.status_message = "Refresh already in progress"
            return False
        self._refresh_task = task
        return True

    def _toggle_read(self):
        article = self.selected_article
        if article:
            self.db.mark_read(article.id, not article.is_read)
            self.reload_articles()

    def _toggle_star(self):
        article = self.selected_article
        if article:
            self.db.toggle_starred(article.id)
            self.reload_articles()

    def _open_in_browser(self):
        article = self.selected_article
        if article and article.url:
            self.opener(article.url)

    def email_link(self, article: DBArticle) -> str:
        body = article.url
        if self.current_summary and self.current_summary.article_id == article.id:
            body += "\n\n" + self.current_summary.content
        return f"mailto:?subject={quote(article.title)}&body={quote(body)}"

    def _email_article(self):
        article = self.selected_article
        if article:
            self.opener(self.email_link(article))

    def _start_bookmark_input(self):
        if self.bookmarks is None:
            self.status_message = "Raindrop not configured"
            return
        if self.selected_article is not None:
            self._enter_input(Mode.TAG_INPUT)

    def delete_selected_article(self):
        """Delete the selected article from the store and the in-memory list."""
        article = self.selected_article
        if article is None:
            return

        self.db.delete_article(article.id)
        self._deleted.append(article)
        self.articles = [a for a in self.articles if a.id != article.id]
        self._clamp_selection()
        self.on_selection_changed()
        self.status_message = f"Deleted: {article.title} (u to undo)"

    def undelete_article(self):
        """Restore the most recently deleted article."""
        if not self._deleted:
            self.status_message = "Nothing to undelete"
            return

        article = self._deleted.pop()
        if not self.db.restore_article(article):
            self.status_message = f"Could not restore: {article.title}"
            return

        self.articles = self.db.get_articles()
        visible = self.filtered_articles
        for index, candidate in enumerate(visible):
            if candidate.id == article.id:
                self.selected_index = index
                break
        self._clamp_selection()
        self.on_selection_changed()
        self.status_message = f"Restored: {article.title}"

    def delete_selected_feed(self):
        """Unsubscribe from the selected article's feed."""
        article = self.selected_article
        if article is None:
            return

        feed_title = article.feed_title or "feed"
        self.feed_service.delete_feed(article.feed_id)
        self._deleted = [a for a in self._deleted if a.feed_id != article.feed_id]
        self.reload_feeds()
        self.articles = self.db.get_articles()
        self._clamp_selection()
        self.on_selection_changed()
        self.status_message = f"Deleted feed: {feed_title}"

    # ─────────────────────────────────────────────────────────────
    # Input modes
    # ─────────────────────────────────────────────────────────────

    def _enter_input(self, mode: Mode):
        self.mode = mode
        self.input_buffer = ""

    def _leave_input(self):
        self.mode = Mode.NORMAL
        self.input_buffer = ""

    def _confirm_input(self):
        mode, text = self.mode, self.input_buffer.strip()
        self._leave_input()

        if mode is Mode.TAG_INPUT:
            self._start_bookmark(merge_tags(text, self.default_tags))
        elif mode is Mode.FEED_INPUT and text:
            self._discovery_task = asyncio.create_task(self.feed_service.add_feed(text))
        elif mode is Mode.OPML_IMPORT_INPUT and text:
            self._import_task = asyncio.create_task(
                self.feed_service.import_opml(Path(text).expanduser(), refresh=False)
            )
        elif mode is Mode.OPML_EXPORT_INPUT and text:
            self._export_opml(Path(text).expanduser())

    def _start_bookmark(self, tags: list[str]):
        article = self.selected_article
        if article is None or self.bookmarks is None:
            return
        excerpt = None
        if self.current_summary and self.current_summary.article_id == article.id:
            excerpt = self.current_summary.content
        self._bookmark_task = asyncio.create_task(self._save_bookmark(article, excerpt, tags))

    async def _save_bookmark(self, article: DBArticle, excerpt: str | None, tags: list[str]):
        external_id = await self.bookmarks.save_bookmark(
            url=article.url, title=article.title, excerpt=excerpt, tags=tags,
        )
        return article.id, external_id, tags

    def _export_opml(self, path: Path):
        try:
            count = self.feed_service.export_opml(path)
        except OpmlError as e:
            self.status_message = f"Error: {e}"
            return
        self.status_message = f"Exported {count} feeds to {path}"

    # ─────────────────────────────────────────────────────────────
    # Per-tick polling
    # ─────────────────────────────────────────────────────────────

    def tick(self):
        """Advance timers and apply any finished background work. Never waits."""
        self.spinner_index = (self.spinner_index + 1) % len(SPINNER_FRAMES)

        completion = self.dispatcher.drain({a.id for a in self.articles})
        if completion:
            self.apply_completion(completion)

        self._poll_refresh()
        self._poll_discovery()
        self._poll_import()
        self._poll_bookmark()
        self.check_read_timer()
        self._check_scheduled_refresh()

    def apply_completion(self, completion: Completion):
        selected = self.selected_article
        is_selected = selected is not None and selected.id == completion.article_id

        if completion.outcome is CompletionOutcome.APPLIED:
            if is_selected:
                self.current_summary = completion.summary
                self.summary_status = SummaryStatus.GENERATED
        elif completion.outcome is CompletionOutcome.FAILED:
            if is_selected:
                self.summary_status = SummaryStatus.FAILED
            self.status_message = f"Summary failed: {completion.error}"
        elif completion.outcome is CompletionOutcome.ORPHANED:
            if self.summary_status is not SummaryStatus.GENERATED:
                self.current_summary = None
                self.summary_status = SummaryStatus.NOT_GENERATED

    def check_read_timer(self):
        """Mark the selection read once it has been shown long enough."""
        if self._selection_time is None:
            return
        if self.clock() - self._selection_time < READ_DELAY:
            return

        article = self.selected_article
        if article and not article.is_read:
            # No reload: the article stays in the unread view until the next one
            self.db.mark_read(article.id)
        self._selection_time = None

    def _refresh_new_feeds(self):
        """Fetch newly subscribed feeds, after the running refresh if there is one."""
        task = self.feed_service.schedule_refresh()
        self._last_refresh = self.clock()
        if task is None:
            self._refresh_queued = True
            return
        self._refresh_task = task

    def _check_scheduled_refresh(self):
        if self.refresh_interval <= 0 or self.is_refreshing:
            return
        if self._last_refresh is None or self.clock() - self._last_refresh >= self.refresh_interval:
            self.start_refresh()

    def _poll_refresh(self):
        task = self._refresh_task
        if task is None or not task.done():
            return
        self._refresh_task = None

        try:
            report = task.result()
        except (ReaderError, OSError) as e:
            logger.error(f"Refresh failed: {e}")
            self.status_message = f"Error: {e}"
        else:
            self.status_message = report.describe()

        self.reload_feeds()
        self.reload_articles()

        if self._refresh_queued:
            self._refresh_queued = False
            self.start_refresh()

    def _poll_discovery(self):
        task = self._discovery_task
        if task is None or not task.done():
            return
        self._discovery_task = None

        try:
            feed = task.result()
        except ReaderError as e:
            self.status_message = f"Error: {e}"
            return

        self.status_message = f"Added: {feed.title}"
        self.reload_feeds()
        self._refresh_new_feeds()

    def _poll_import(self):
        task = self._import_task
        if task is None or not task.done():
            return
        self._import_task = None

        try:
            report = task.result()
        except ReaderError as e:
            self.status_message = f"Error: {e}"
            return

        self.status_message = f"Imported {report.added} feeds"
        self.reload_feeds()
        self._refresh_new_feeds()

    def _poll_bookmark(self):
        task = self._bookmark_task
        if task is None or not task.done():
            return
        self._bookmark_task = None

        try:
            article_id, external_id, tags = task.result()
        except ReaderError as e:
            logger.error(f"Failed to save to Raindrop: {e}")
            self.status_message = f"Error: {e}"
            return

        self.db.mark_saved_bookmark(article_id, external_id, tags)
        self.db.mark_read(article_id)
        selected = self.selected_article
        if selected and selected.id == article_id:
            self.is_bookmarked = True
        self.status_message = "Saved to Raindrop"

    async def shutdown(self):
        """Cancel background work."""
        await self.dispatcher.shutdown()
        for task in (self._refresh_task, self._discovery_task, self._import_task, self._bookmark_task):
            if task and not task.done():
                task.cancel()


def _running(task: asyncio.Task | None) -> bool:
    return task is not None and not task.done()
