"""
Place repository backed by SQLAlchemy/SQLite.
"""
from typing import List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session

from domain.models import Place, PointOfInterest
from repositories.models import PlaceORM, PointOfInterestORM


def _poi_from_orm(orm: PointOfInterestORM) -> PointOfInterest:
    return PointOfInterest(
        id=orm.id,
        place_id=orm.place_id,
        name=orm.name,
        latitude=orm.latitude,
        longitude=orm.longitude,
    )


def _place_from_orm(orm: PlaceORM) -> Place:
    return Place(
        id=orm.id,
        name=orm.name,
        latitude=orm.latitude,
        longitude=orm.longitude,
        last_used_at=orm.last_used_at,
        points_of_interest=[_poi_from_orm(p) for p in orm.points_of_interest],
    )


def _poi_to_orm(poi: PointOfInterest, place_id: str, position: int) -> PointOfInterestORM:
    return PointOfInterestORM(
        id=poi.id,
        place_id=place_id,
        name=poi.name,
        latitude=poi.latitude,
        longitude=poi.longitude,
        position=position,
    )


class PlacesRepository:
    """CRUD operations for places and their points of interest."""

    def list_places(self, session: Session) -> List[Place]:
        places = session.query(PlaceORM).order_by(PlaceORM.last_used_at.desc()).all()
        return [_place_from_orm(p) for p in places]

    def get_place(self, session: Session, place_id: str) -> Optional[Place]:
        orm = session.get(PlaceORM, place_id)
        return _place_from_orm(orm) if orm else None

    def count_places(self, session: Session) -> int:
        return session.query(func.count(PlaceORM.id)).scalar() or 0

    def create_place(self, session: Session, place: Place) -> Place:
        orm = PlaceORM(
            id=place.id,
            name=place.name,
            latitude=place.latitude,
            longitude=place.longitude,
            last_used_at=place.last_used_at,
        )
        for index, poi in enumerate(place.points_of_interest):
            orm.points_of_interest.append(_poi_to_orm(poi, place.id, index))
        session.add(orm)
        session.commit()
        session.refresh(orm)
        return _place_from_orm(orm)

    def update_place(self, session: Session, place: Place) -> Place:
        """Write scalar fields and append any POIs not yet stored."""
        orm = session.get(PlaceORM, place.id)
        if not orm:
            raise ValueError("Place not found")
        orm.name = place.name
        orm.latitude = place.latitude
        orm.longitude = place.longitude
        orm.last_used_at = place.last_used_at
        stored_ids = {p.id for p in orm.points_of_interest}
        position = len(orm.points_of_interest)
        for poi in place.points_of_interest:
            if poi.id in stored_ids:
                continue
            orm.points_of_interest.append(_poi_to_orm(poi, place.id, position))
            position += 1
        session.add(orm)
        session.commit()
        session.refresh(orm)
        return _place_from_orm(orm)

    def add_points_of_interest(
        self, session: Session, place_id: str, pois: List[PointOfInterest]
    ) -> List[PointOfInterest]:
        orm = session.get(PlaceORM, place_id)
        if not orm:
            raise ValueError("Place not found")
        position = len(orm.points_of_interest)
        for offset, poi in enumerate(pois):
            orm.points_of_interest.append(_poi_to_orm(poi, place_id, position + offset))
        session.add(orm)
        session.commit()
        session.refresh(orm)
        return [_poi_from_orm(p) for p in orm.points_of_interest]

    def count_points_of_interest(self, session: Session, place_id: Optional[str] = None) -> int:
        query = session.query(func.count(PointOfInterestORM.id))
        if place_id is not None:
            query = query.filter(PointOfInterestORM.place_id == place_id)
        return query.scalar() or 0

    def delete_place(self, session: Session, place_id: str) -> bool:
        orm = session.get(PlaceORM, place_id)
        if not orm:
            return False
        session.delete(orm)
        session.commit()
        return True
