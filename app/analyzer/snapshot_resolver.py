"""Pulse — Latest-Snapshot Resolver.

One query shape for "latest observation per entity as of a cutoff", used
for both post metric snapshots and follower snapshots:

    row_number() over (partition by entity order by time desc, id desc)

Ties on the observation time resolve to the most recently inserted row.
"""

from typing import Any, Dict, Iterable, Optional, Sequence, Type, TypeVar

from sqlalchemy import func, select as sa_select
from sqlmodel import Session, SQLModel, select

from app.core.logging import get_logger
from app.models.store_models import FollowerSnapshot, PostMetricSnapshot

logger = get_logger("analyzer.resolver")

SnapshotT = TypeVar("SnapshotT", bound=SQLModel)


def latest_per_entity(
    session: Session,
    model: Type[SnapshotT],
    entity_column: str,
    time_column: str,
    entity_ids: Optional[Sequence[str]] = None,
    as_of: Any = None,
    inclusive: bool = True,
    filters: Iterable[Any] = (),
) -> Dict[str, SnapshotT]:
    """Pick the newest snapshot per entity not exceeding `as_of`.

    entity_ids=None means every entity in the table. With inclusive=False
    the cutoff is exclusive, which is how month-end instants are passed.
    Entities with no qualifying snapshot are absent from the result.
    """
    if entity_ids is not None and len(entity_ids) == 0:
        return {}

    entity_col = getattr(model, entity_column)
    time_col = getattr(model, time_column)
    id_col = getattr(model, "id")

    conditions = list(filters)
    if entity_ids is not None:
        conditions.append(entity_col.in_(list(entity_ids)))
    if as_of is not None:
        conditions.append(time_col <= as_of if inclusive else time_col < as_of)

    ranked = (
        sa_select(
            id_col.label("snapshot_id"),
            func.row_number()
            .over(partition_by=entity_col, order_by=(time_col.desc(), id_col.desc()))
            .label("rn"),
        )
        .where(*conditions)
        .subquery()
    )
    stmt = (
        select(model)
        .join(ranked, id_col == ranked.c.snapshot_id)
        .where(ranked.c.rn == 1)
    )
    rows = session.exec(stmt).all()
    logger.debug(f"Resolved {len(rows)} latest {model.__tablename__} rows (as_of={as_of})")
    return {getattr(r, entity_column): r for r in rows}


def latest_post_metrics(
    session: Session,
    post_ids: Sequence[str],
    as_of: Any = None,
) -> Dict[str, PostMetricSnapshot]:
    """Latest metric snapshot per post observed strictly before `as_of`."""
    return latest_per_entity(
        session,
        PostMetricSnapshot,
        "post_id",
        "observed_at",
        entity_ids=post_ids,
        as_of=as_of,
        inclusive=False,
    )


def latest_followers(
    session: Session,
    platform: str,
    account_ids: Optional[Sequence[str]] = None,
    as_of: Any = None,
) -> Dict[str, FollowerSnapshot]:
    """Latest follower snapshot per account dated on or before `as_of`."""
    return latest_per_entity(
        session,
        FollowerSnapshot,
        "account_id",
        "snapshot_date",
        entity_ids=account_ids,
        as_of=as_of,
        inclusive=True,
        filters=[FollowerSnapshot.platform == platform],
    )
