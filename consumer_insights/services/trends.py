from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from datetime import date, timedelta

from consumer_insights.models.records import Document


def build_trend_data(documents: Iterable[Document], *, fill_gaps: bool = False) -> list[dict]:
    """Day-bucketed document counts, oldest first.

    Each document is dated by ``article_published_at`` and falls back to
    ``created_at``; undated documents are skipped. With ``fill_gaps`` every
    day between the first and last bucket is present, zero-filled.
    """
    counts: Counter[date] = Counter()
    for doc in documents:
        when = doc.effective_date
        if when is not None:
            counts[when.date()] += 1

    if not counts:
        return []

    if fill_gaps:
        day, last = min(counts), max(counts)
        days = []
        while day <= last:
            days.append(day)
            day += timedelta(days=1)
    else:
        days = sorted(counts)

    return [{"date": day.isoformat(), "count": counts.get(day, 0)} for day in days]
