"""Query helpers shared by the list and stats endpoints."""

import math

from sqlalchemy import func
from sqlalchemy.orm import Query, Session


def paginate(query: Query, page: int, limit: int) -> tuple[list, int]:
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return items, total


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


def grouped_stats(db: Session, group_column, score_column, *criteria) -> list[dict]:
    """Count rows and average ``score_column`` per distinct ``group_column``.

    Rows with a NULL score are counted but do not contribute to the average,
    which is None for groups without any score.
    """
    rows = (
        db.query(group_column, func.count(), func.avg(score_column))
        .filter(*criteria)
        .group_by(group_column)
        .order_by(group_column)
        .all()
    )
    return [
        {
            'group': group,
            'count': count,
            'averageScore': float(average) if average is not None else None,
        }
        for group, count, average in rows
    ]


def grouped_counts(db: Session, group_column, *criteria) -> list[dict]:
    rows = (
        db.query(group_column, func.count())
        .filter(*criteria)
        .group_by(group_column)
        .order_by(group_column)
        .all()
    )
    return [{'group': group, 'count': count} for group, count in rows]


def column_sum(db: Session, column, *criteria) -> int:
    total = db.query(func.coalesce(func.sum(column), 0)).filter(*criteria).scalar()
    return int(total or 0)
