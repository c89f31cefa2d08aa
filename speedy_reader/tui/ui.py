"""
Screen rendering with rich.

Pure presentation: every function reads session state and returns a renderable.
"""

from rich.align import Align
from rich.console import Group
from rich.layout import Layout
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..keymap import HELP_TEXT, Mode
from ..session import Session, SummaryStatus

INPUT_PROMPTS = {
    Mode.TAG_INPUT: ("Save to Raindrop", "Tags (comma separated):"),
    Mode.FEED_INPUT: ("Add Feed", "Feed or site URL:"),
    Mode.OPML_IMPORT_INPUT: ("Import OPML", "Path to OPML file:"),
    Mode.OPML_EXPORT_INPUT: ("Export OPML", "Write OPML to:"),
}

# Rows taken by borders, header and status lines around the article list
_LIST_CHROME = 7


def truncate(value: str, width: int) -> str:
    if len(value) <= width:
        return value
    return value[: max(0, width - 1)] + "…"


def visible_window(selected: int, count: int, rows: int) -> tuple[int, int]:
    """Return the [start, end) slice of the list that keeps the selection on screen."""
    rows = max(1, rows)
    if count <= rows:
        return 0, count
    start = min(max(0, selected - rows // 2), count - rows)
    return start, start + rows


def render_header(session: Session) -> Panel:
    stats = f"{len(session.articles)} Stories | {session.unread_count} Unread"
    return Panel(
        Text(stats, style="white"),
        title=f"SpeedyReader [{session.filter.value}]",
        title_align="left",
        border_style="cyan",
    )


def render_article_list(session: Session, height: int) -> Panel:
    articles = session.filtered_articles
    table = Table.grid(expand=True)
    table.add_column(width=2)
    table.add_column(ratio=1, no_wrap=True)

    start, end = visible_window(session.selected_index, len(articles), height - _LIST_CHROME)
    for index in range(start, end):
        article = articles[index]
        is_selected = index == session.selected_index
        line = Text()
        line.append("★ " if article.is_starred else "  ", style="yellow")
        line.append(f"[{article.feed_title or 'Unknown'}] ", style="blue")
        line.append(article.title, style="bright_black" if article.is_read else "white")
        table.add_row(
            ">" if is_selected else "",
            line,
            style="bold on grey23" if is_selected else "",
        )

    if not articles:
        table.add_row("", Text("No articles. Press r to refresh or a to add a feed.", style="dim"))
    return Panel(table, border_style="white")


def render_left_status(session: Session) -> Text:
    if session.is_refreshing:
        return Text(f"{session.spinner} Refreshing feeds...", style="cyan")
    if session.is_searching:
        return Text(f"{session.spinner} Searching for feed...", style="cyan")
    if session.is_importing:
        return Text(f"{session.spinner} Importing...", style="yellow")
    if session.status_message:
        style = "red" if session.status_message.startswith("Error") else "green"
        return Text(session.status_message, style=style)
    return Text("Press ? for help", style="dim")


def render_article_title(session: Session) -> Panel:
    article = session.selected_article
    if article is None:
        return Panel("", border_style="cyan")
    title = Text(article.title, style="bold")
    if article.author:
        title.append(f"  by {article.author}", style="dim")
    return Panel(title, subtitle=truncate(article.url, 80), border_style="cyan")


def render_feed_content(session: Session) -> Panel:
    article = session.selected_article
    text = ""
    if article is not None:
        text = article.content_text or article.content or "No content in feed."
    return Panel(Text(text), title="Feed Content", title_align="left", border_style="white")


def render_summary(session: Session) -> Panel:
    status = session.summary_status
    if status is SummaryStatus.GENERATED and session.current_summary:
        body = Text(session.current_summary.content)
    elif status is SummaryStatus.GENERATING:
        body = Text(f"{session.spinner} Generating summary...", style="cyan")
    elif status is SummaryStatus.FAILED:
        body = Text("Summary generation failed. Press g to retry.", style="red")
    elif status is SummaryStatus.NO_API_KEY:
        body = Text("No Claude API key configured. Set claude_api_key in the config file.", style="yellow")
    else:
        body = Text("Press Enter to generate a summary.", style="dim")
    return Panel(body, title="AI Summary", title_align="left", border_style="magenta")


def render_right_status(session: Session) -> Text:
    parts = []
    if session.summary_status is SummaryStatus.GENERATED and session.current_summary:
        parts.append(f"Model: {session.current_summary.model_version}")
    elif session.summary_status is SummaryStatus.GENERATING:
        parts.append(f"{session.spinner} Generating...")
    if session.is_saving_bookmark:
        parts.append(f"{session.spinner} Saving to Raindrop...")
    elif session.is_bookmarked:
        parts.append("Saved to Raindrop")
    return Text(" | ".join(parts), style="dim")


def render_input(session: Session) -> Panel:
    title, prompt = INPUT_PROMPTS[session.mode]
    body = Group(
        Text(prompt),
        Text(session.input_buffer + "█", style="bold"),
        Text(""),
        Text("Enter to confirm, Esc to cancel", style="dim"),
    )
    return Panel(body, title=title, border_style="yellow", width=70)


def render_help() -> Panel:
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()
    for key, description in HELP_TEXT:
        table.add_row(key, description)
    return Panel(table, title="Help (any key to close)", border_style="cyan", width=60)


def render(session: Session, height: int) -> Layout:
    """Build the full screen for the current session state."""
    left = Layout(name="left", ratio=1)
    left.split_column(
        Layout(render_header(session), name="header", size=3),
        Layout(render_article_list(session, height), name="list"),
        Layout(render_left_status(session), name="left_status", size=1),
    )

    right = Layout(name="right", ratio=2)
    if session.mode is Mode.HELP:
        right.update(Align.center(render_help(), vertical="middle"))
    elif session.mode.is_input:
        right.update(Align.center(render_input(session), vertical="middle"))
    else:
        right.split_column(
            Layout(render_article_title(session), name="title", size=3),
            Layout(render_feed_content(session), name="content", ratio=3),
            Layout(render_summary(session), name="summary", ratio=7),
            Layout(render_right_status(session), name="right_status", size=1),
        )

    root = Layout(name="root")
    root.split_row(left, right)
    return root
