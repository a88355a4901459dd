from datetime import datetime, timedelta, timezone

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from . import models, schemas
from .config import get_settings
from .database import get_db

oauth2_scheme = OAuth2PasswordBearer(tokenUrl='/auth/login')   # login is where users trade email and password for a token


def create_access_token(data: dict):
    settings = get_settings()
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode.update({"exp": expire})

    return jwt.encode(to_encode, key=settings.secret_key, algorithm=settings.algorithm)


def verify_access_token(token: str, credentials_exception):
    settings = get_settings()
    try:
        payload = jwt.decode(token, key=settings.secret_key, algorithms=[settings.algorithm])
        id = payload.get("user_id")

        if id is None:
            raise credentials_exception

        token_data = schemas.TokenData(id=id)

    except JWTError:
        raise credentials_exception

    return token_data


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)):
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    token_data = verify_access_token(token, credentials_exception)

    user = db.query(models.User).filter(models.User.id == token_data.id).first()
    if not user:
        raise credentials_exception

    return user


def require_roles(*roles: models.Role):
    allowed = {role.value for role in roles}

    def role_checker(current_user: models.User = Depends(get_current_user)):
        if current_user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"User role '{current_user.role}' is not authorized to access this route"
            )
        return current_user

    return role_checker


get_current_admin = require_roles(models.Role.ADMIN)
