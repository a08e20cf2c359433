from __future__ import annotations

from collections import Counter
from datetime import date, timedelta
from urllib.parse import urlsplit

from sqlalchemy import func

from tmarks.extensions import db
from tmarks.models import Share, TabGroup, TabGroupItem

GROUP_SIZE_BUCKETS = (
    ("0", 0),
    ("1-5", 5),
    ("6-10", 10),
    ("11-20", 20),
    ("21-50", 50),
    ("50+", None),
)
TOP_DOMAIN_LIMIT = 10


def _bucket_for(item_count: int) -> str:
    for label, upper in GROUP_SIZE_BUCKETS:
        if upper is None or item_count <= upper:
            return label
    return GROUP_SIZE_BUCKETS[-1][0]


def _domain(url: str) -> str:
    try:
        netloc = urlsplit(url).netloc
    except ValueError:
        return url
    return netloc.lower() or url


def _user_items_query(user_id: int):
    return TabGroupItem.query.join(
        TabGroup, TabGroupItem.group_id == TabGroup.id
    ).filter(TabGroup.user_id == user_id)


def _daily_counts(query, column, start: date) -> list[dict]:
    day = func.date(column)
    rows = (
        query.with_entities(day.label("date"), func.count().label("count"))
        .filter(day >= start.isoformat())
        .group_by(day)
        .order_by(day.asc())
        .all()
    )
    return [{"date": str(day_value), "count": count} for day_value, count in rows]


def collect_statistics(user_id: int, days: int, today: date | None = None) -> dict:
    today = today or date.today()
    start = today - timedelta(days=days)

    groups = TabGroup.query.filter_by(user_id=user_id)
    items = _user_items_query(user_id)

    total_groups = groups.filter_by(is_deleted=False).count()
    total_deleted_groups = groups.filter_by(is_deleted=True).count()
    total_items = items.count()
    total_shares = Share.query.filter_by(user_id=user_id).count()

    domain_counts = Counter(
        _domain(url) for (url,) in items.with_entities(TabGroupItem.url)
    )
    top_domains = [
        {"domain": domain, "count": count}
        for domain, count in domain_counts.most_common(TOP_DOMAIN_LIMIT)
    ]

    size_rows = (
        db.session.query(TabGroup.id, func.count(TabGroupItem.id))
        .outerjoin(TabGroupItem, TabGroupItem.group_id == TabGroup.id)
        .filter(TabGroup.user_id == user_id, TabGroup.is_deleted.is_(False))
        .group_by(TabGroup.id)
        .all()
    )
    bucket_counts = Counter(_bucket_for(count) for _, count in size_rows)
    distribution = [
        {"range": label, "count": bucket_counts[label]}
        for label, _ in GROUP_SIZE_BUCKETS
        if bucket_counts[label]
    ]

    return {
        "summary": {
            "total_groups": total_groups,
            "total_deleted_groups": total_deleted_groups,
            "total_items": total_items,
            "total_shares": total_shares,
        },
        "trends": {
            "groups": _daily_counts(groups, TabGroup.created_at, start),
            "items": _daily_counts(items, TabGroupItem.created_at, start),
        },
        "top_domains": top_domains,
        "group_size_distribution": distribution,
    }
