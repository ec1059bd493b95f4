from collections.abc import Callable, Generator

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from medsched.core.security import decode_token
from medsched.db.session import SessionLocal
from medsched.models.user import User, UserRole

bearer_scheme = HTTPBearer()

# Only academic administration may change the timetable; everyone else reads it.
SCHEDULE_EDITOR_ROLES = (UserRole.admin, UserRole.academic_staff)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def _subject_of(token: str) -> str:
    try:
        subject = decode_token(token).get("sub")
    except JWTError as exc:
        raise _unauthorized() from exc
    if not subject:
        raise _unauthorized()
    return str(subject)


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    user = db.get(User, _subject_of(credentials.credentials))
    if user is None:
        raise _unauthorized()
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is inactive")
    return user


def require_roles(*roles: UserRole) -> Callable[[User], User]:
    allowed = frozenset(roles)

    def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return current_user

    return role_checker


require_schedule_editor = require_roles(*SCHEDULE_EDITOR_ROLES)
