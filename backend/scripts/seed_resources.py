"""
Seed the campus rooms and lab stations.

Usage:
    python scripts/seed_resources.py
"""

from sqlmodel import Session, select

from campus_booking.db import engine, init_db
from campus_booking.models import Resource, ResourceKind, RoomType

STATIONS_PER_LAB = 8

# (name, building, floor, capacity, room type)
ROOMS = [
    ("Lecture Hall A", "Main Building", 1, 150, RoomType.LECTURE_HALL),
    ("Lecture Hall B", "Main Building", 1, 120, RoomType.LECTURE_HALL),
    ("Auditorium", "Science Center", 1, 300, RoomType.LECTURE_HALL),
    ("Room 101", "Main Building", 1, 30, RoomType.CLASSROOM),
    ("Room 102", "Main Building", 1, 35, RoomType.CLASSROOM),
    ("Room 201", "Main Building", 2, 40, RoomType.CLASSROOM),
    ("Room 202", "Main Building", 2, 25, RoomType.CLASSROOM),
    ("Computer Lab 1", "Science Center", 2, 25, RoomType.LAB),
    ("Physics Lab", "Science Center", 3, 20, RoomType.LAB),
    ("Chemistry Lab", "Science Center", 3, 20, RoomType.LAB),
    ("Conference Room A", "Admin Block", 2, 12, RoomType.CONFERENCE_ROOM),
    ("Meeting Room 1", "Main Building", 2, 8, RoomType.CONFERENCE_ROOM),
]


def seed_rooms(session: Session) -> int:
    existing = session.exec(
        select(Resource).where(Resource.kind == ResourceKind.ROOM.value)
    ).all()
    if existing:
        print(f"Found {len(existing)} rooms, skipping room creation")
        return 0

    for name, building, floor, capacity, room_type in ROOMS:
        session.add(
            Resource(
                kind=ResourceKind.ROOM.value,
                name=name,
                building=building,
                floor=floor,
                capacity=capacity,
                room_type=room_type.value,
            )
        )
        print(f"  [OK] {name}")
    session.commit()
    return len(ROOMS)


def seed_stations(session: Session) -> int:
    has_stations = session.exec(
        select(Resource.id).where(Resource.kind == ResourceKind.LAB_STATION.value)
    ).first()
    if has_stations is not None:
        print("Lab stations already exist, skipping station creation")
        return 0

    labs = session.exec(
        select(Resource).where(
            Resource.kind == ResourceKind.ROOM.value,
            Resource.room_type == RoomType.LAB.value,
        )
    ).all()
    created = 0
    for lab in labs:
        for number in range(1, STATIONS_PER_LAB + 1):
            session.add(
                Resource(
                    kind=ResourceKind.LAB_STATION.value,
                    name=f"{lab.name} S-{number:02d}",
                    description=f"Workstation {number} in {lab.name}",
                    building=lab.building,
                    floor=lab.floor,
                    parent_id=lab.id,
                    station_number=f"S-{number:02d}",
                )
            )
            created += 1
    session.commit()
    print(f"  [OK] {created} stations across {len(labs)} labs")
    return created


if __name__ == "__main__":
    print("=" * 60)
    print("Seeding campus resources")
    print("=" * 60)
    init_db()
    with Session(engine) as session:
        rooms = seed_rooms(session)
        stations = seed_stations(session)
    print(f"\n[OK] Created {rooms} rooms and {stations} lab stations")
    print("=" * 60)
