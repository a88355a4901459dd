from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from .. import models, oauth2, schemas, utils
from ..database import get_db

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=schemas.AuthResponse)
def register(user: schemas.UserCreate, db: Session = Depends(get_db)):

    #1. one account per email
    if db.query(models.User).filter(models.User.email == user.email).first():
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="User with this email already exists")

    #2. create model with hashed password
    new_user = models.User(
        name=user.name,
        email=user.email,
        phone=user.phone,
        hashed_password=utils.hash_password(user.password),
        role=models.Role.USER.value
    )

    #3. save to db
    try:
        db.add(new_user)
        db.commit()
        db.refresh(new_user)
    except Exception:
        db.rollback()
        raise HTTPException(status.HTTP_409_CONFLICT, detail="User with this email already exists")

    access_token = oauth2.create_access_token({"user_id": str(new_user.id)})
    return {"message": "User registered successfully", "token": access_token, "user": new_user}


@router.post("/login", status_code=status.HTTP_200_OK, response_model=schemas.Token)
def login(user_credentials: schemas.UserLogin, db: Session = Depends(get_db)):

    #1. find user by email
    user = db.query(models.User).filter(models.User.email == user_credentials.email).first()

    #2. verify password
    if not user or not utils.verify(user_credentials.password, user.hashed_password):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    #3. create a access_token
    access_token = oauth2.create_access_token({"user_id": str(user.id)})
    return {"access_token": access_token, "token_type": "bearer"}
