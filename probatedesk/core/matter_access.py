"""Matter access control - the single ownership check for client routes.

A matter that does not exist and a matter owned by someone else are
indistinguishable to the caller: both raise NotFound.
"""

from uuid import UUID

from sqlalchemy.orm import Session

from probatedesk.core.errors import NotFound
from probatedesk.db.models import Matter


def get_active_matter(db: Session, matter_id: UUID) -> Matter | None:
    """Load a non-deleted matter by id."""
    return (
        db.query(Matter)
        .filter(Matter.id == matter_id, Matter.deleted_at.is_(None))
        .first()
    )


def get_owned_matter(db: Session, matter_id: UUID, user_id: UUID) -> Matter:
    """
    Load a matter the caller owns.

    Raises:
        NotFound: matter missing, soft-deleted, unclaimed, or owned by another user
    """
    matter = get_active_matter(db, matter_id)
    if matter is None or matter.user_id != user_id:
        raise NotFound("Matter not found")
    return matter


def get_matter_for_ops(db: Session, matter_id: UUID) -> Matter:
    """Ops see every non-deleted matter."""
    matter = get_active_matter(db, matter_id)
    if matter is None:
        raise NotFound("Matter not found")
    return matter
