from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from supermarket.api.deps import get_actor, require_user
from supermarket.data.database import get_db
from supermarket.services.cart_service import Actor, CartService
from supermarket.services.user_service import UserService
from supermarket.domain.schemas import LoginIn, LoginOut, UserCreate, UserRead

router = APIRouter(prefix="/users", tags=["users"])

@router.post("/register", response_model=UserRead, status_code=201)
def register(payload: UserCreate, db: Session = Depends(get_db)):
    return UserService(db).create_user(payload)

@router.post("/login", response_model=LoginOut)
def login(
    payload: LoginIn,
    request: Request,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    user = UserService(db).login(payload.email, payload.password, actor, request.session)
    return {"user": user, "cart": CartService(db, actor).build_snapshot()}

@router.post("/logout")
def logout(request: Request, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    UserService(db).logout(actor, request.session)
    return {"success": True}

@router.get("/me", response_model=UserRead)
def me(actor: Actor = Depends(require_user), db: Session = Depends(get_db)):
    return UserService(db).get_user(actor.user_id)
