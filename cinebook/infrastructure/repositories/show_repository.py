# cinebook/infrastructure/repositories/show_repository.py

from datetime import datetime

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from cinebook.domain.exceptions import ShowNotFoundError
from cinebook.infrastructure.db.models import Booking, Show


class ShowRepository:

    def __init__(self, db: Session):
        self.db = db

    def lock(self, show_id: str) -> Show:
        """
        SELECT ... FOR UPDATE
        Serializes seat-map writers for this show across processes.
        """

        stmt = (
            select(Show)
            .where(Show.id == show_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )

        show = self.db.execute(stmt).scalar_one_or_none()

        if not show:
            raise ShowNotFoundError(show_id)

        return show

    def get(self, show_id: str) -> Show | None:
        return self.db.get(Show, show_id)

    def exists(self, movie_id: str, theater: str, starts_at: datetime) -> bool:
        stmt = select(Show.id).where(
            and_(
                Show.movie_id == movie_id,
                Show.theater == theater,
                Show.starts_at == starts_at,
            )
        )
        return self.db.execute(stmt).first() is not None

    def add(self, show: Show) -> Show:
        self.db.add(show)
        return show

    def delete(self, show: Show) -> None:
        self.db.delete(show)

    def has_bookings(self, show_id: str) -> bool:
        stmt = select(func.count(Booking.id)).where(Booking.show_id == show_id)
        return self.db.execute(stmt).scalar_one() > 0

    def list_shows(
        self,
        starts_from: datetime | None = None,
        starts_before: datetime | None = None,
        theater: str | None = None,
        movie_id: str | None = None,
        include_inactive: bool = False,
    ) -> list[Show]:
        stmt = select(Show)
        if not include_inactive:
            stmt = stmt.where(Show.is_active.is_(True))
        if starts_from is not None:
            stmt = stmt.where(Show.starts_at >= starts_from)
        if starts_before is not None:
            stmt = stmt.where(Show.starts_at < starts_before)
        if theater:
            stmt = stmt.where(Show.theater.ilike(f"%{theater}%"))
        if movie_id:
            stmt = stmt.where(Show.movie_id == movie_id)

        stmt = stmt.order_by(Show.starts_at, Show.theater)
        return list(self.db.execute(stmt).scalars().all())
