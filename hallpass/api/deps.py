# hallpass/api/deps.py
from typing import Generator
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from hallpass.core.config import settings
from hallpass.crud.crud_classroom import classroom_crud
from hallpass.db.session import SessionLocal
from hallpass.models.classroom import Classroom
from hallpass.schemas.token import TokenPayload


def get_db() -> Generator:
    """Dependency to get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# The `tokenUrl` doesn't have to be a real endpoint in this service,
# tokens are issued by the auth service; it's just for the OpenAPI docs.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")


def get_current_user(token: str = Depends(oauth2_scheme)) -> TokenPayload:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=["HS256"])
        token_data = TokenPayload(**payload)
    except (JWTError, ValueError):
        # Catches any error from jose or Pydantic validation
        raise credentials_exception

    return token_data


def get_owned_classroom(
    classroom_id: str,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(get_current_user),
) -> Classroom:
    """
    Resolve the path classroom and check the caller teaches it.

    Another teacher's classroom is reported as missing rather than forbidden.
    """
    classroom = classroom_crud.get_owned(
        db, classroom_id=classroom_id, teacher_id=current_user.sub
    )
    if classroom is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Classroom not found",
        )
    return classroom
