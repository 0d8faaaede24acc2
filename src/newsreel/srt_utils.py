"""
Caption paging and SRT writing utilities.
"""

import logging
import re
from pathlib import Path

from .models import CaptionPage, CaptionToken

logger = logging.getLogger("newsreel")

SWITCH_CAPTIONS_EVERY_MS = 1200


def fmt_ts(ms: int) -> str:
    """Milliseconds -> SRT timestamp (HH:MM:SS,mmm)."""
    ms = max(0, int(ms))
    h, rem = divmod(ms, 3_600_000)
    m, rem = divmod(rem, 60_000)
    s, milli = divmod(rem, 1000)
    return f"{h:02}:{m:02}:{s:02},{milli:03}"


def build_caption_pages(
    tokens: list[CaptionToken], combine_within_ms: int = SWITCH_CAPTIONS_EVERY_MS
) -> list[CaptionPage]:
    """Group tokens into short on-screen pages, TikTok style.

    A token joins the current page while it starts less than combine_within_ms
    after the page start. A page stays up at least combine_within_ms (or until
    its last word ends) but never past the start of the next page.
    """
    groups: list[list[CaptionToken]] = []
    for tok in tokens:
        if groups and tok.from_ms - groups[-1][0].from_ms < combine_within_ms:
            groups[-1].append(tok)
        else:
            groups.append([tok])

    pages: list[CaptionPage] = []
    for i, group in enumerate(groups):
        start = group[0].from_ms
        end = max(start + combine_within_ms, group[-1].to_ms)
        if i + 1 < len(groups):
            end = min(end, groups[i + 1][0].from_ms)
        text = " ".join(t.text.strip() for t in group if t.text.strip())
        text = re.sub(r"\s+([,.!?;:])", r"\1", text)
        pages.append(CaptionPage(text=text, start_ms=start, end_ms=end, tokens=group))
    return pages


def write_srt(pages: list[CaptionPage], path: str, wrap_chars: int = 24, max_lines: int = 3) -> Path:
    """Write caption pages to an SRT file."""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with open(out, "w", encoding="utf-8") as f:
        n = 0
        for page in pages:
            if not page.text or page.end_ms <= page.start_ms:
                continue
            n += 1
            txt = wrap_lines(page.text.upper(), wrap_chars, max_lines)
            f.write(f"{n}\n{fmt_ts(page.start_ms)} --> {fmt_ts(page.end_ms)}\n{txt}\n\n")
    logger.debug(f"Wrote {n} caption pages -> {out}")
    return out


def wrap_lines(text: str, max_chars: int = 42, max_lines: int = 3) -> str:
    """Wrap text to specified character and line limits."""
    words = text.split()
    lines: list[str] = []
    cur: list[str] = []
    for w in words:
        if sum(len(x) for x in cur) + len(cur) + len(w) > max_chars and cur:
            lines.append(" ".join(cur))
            cur = []
            if len(lines) >= max_lines:
                break
        cur.append(w)
    if cur and len(lines) < max_lines:
        lines.append(" ".join(cur))
    return "\n".join(lines)
