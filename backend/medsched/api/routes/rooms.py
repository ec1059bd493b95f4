from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from medsched.api.deps import get_current_user, get_db, require_schedule_editor
from medsched.models.room import Room
from medsched.models.user import User
from medsched.schemas.room import RoomCreate, RoomOut, RoomUpdate
from medsched.services.audit import log_activity

router = APIRouter()


def _ensure_unique_name(db: Session, name: str, *, room_id: str | None = None) -> None:
    stmt = select(Room.id).where(Room.name == name)
    if room_id is not None:
        stmt = stmt.where(Room.id != room_id)
    if db.execute(stmt).first() is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Room name already exists")


@router.get("/", response_model=list[RoomOut])
def list_rooms(
    min_capacity: int | None = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[RoomOut]:
    stmt = select(Room).order_by(Room.name)
    if min_capacity is not None:
        stmt = stmt.where(Room.capacity >= min_capacity)
    return list(db.execute(stmt).scalars())


@router.post("/", response_model=RoomOut, status_code=status.HTTP_201_CREATED)
def create_room(
    payload: RoomCreate,
    current_user: User = Depends(require_schedule_editor),
    db: Session = Depends(get_db),
) -> RoomOut:
    _ensure_unique_name(db, payload.name)
    room = Room(**payload.model_dump())
    db.add(room)
    db.flush()
    log_activity(
        db,
        user=current_user,
        action="room.create",
        entity_type="room",
        entity_id=room.id,
        details={"name": room.name, "capacity": room.capacity},
    )
    db.commit()
    db.refresh(room)
    return room


@router.put("/{room_id}", response_model=RoomOut)
def update_room(
    room_id: str,
    payload: RoomUpdate,
    current_user: User = Depends(require_schedule_editor),
    db: Session = Depends(get_db),
) -> RoomOut:
    """Rename or resize a room. Existing entries are not re-validated against a smaller capacity."""
    room = db.get(Room, room_id)
    if room is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")

    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        return room
    if "name" in changes:
        _ensure_unique_name(db, changes["name"], room_id=room_id)

    previous = {key: getattr(room, key) for key in changes}
    for key, value in changes.items():
        setattr(room, key, value)
    log_activity(
        db,
        user=current_user,
        action="room.update",
        entity_type="room",
        entity_id=room.id,
        details={"before": previous, "after": changes},
    )
    db.commit()
    db.refresh(room)
    return room
