from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy.orm import Session
from app.schemas.user import PasswordChange, UserCreate, UserLogin, UserOut, UserUpdate
from app.db.models.user import User
from app.core.security import hash_password, verify_password, create_access_token
from app.core.deps import get_current_user, get_db

router = APIRouter(tags=["Auth"])

@router.post("/register", status_code=201)
def register(user: UserCreate, db: Session = Depends(get_db)):
    if user.password_confirmation is not None and user.password != user.password_confirmation:
        raise HTTPException(status_code=400, detail="Las contraseñas no coinciden")

    existing_user = db.query(User).filter(User.email == user.email).first()
    if existing_user:
        raise HTTPException(status_code=400, detail="El email ya está registrado")

    new_user = User(
        email=user.email,
        name=user.name,
        hashed_password=hash_password(user.password),
        country=user.country,
        profile_pic=user.profile_pic,
        role="user"  # Por defecto
    )
    db.add(new_user)
    db.commit()
    db.refresh(new_user)

    return {"message": "Usuario creado exitosamente", "user": UserOut.model_validate(new_user)}

@router.post("/login")
def login(user: UserLogin, db: Session = Depends(get_db)):
    db_user = db.query(User).filter(User.email == user.email).first()
    if not db_user or not verify_password(user.password, db_user.hashed_password):
        raise HTTPException(status_code=401, detail="Credenciales incorrectas")

    token = create_access_token({
        "sub": str(db_user.id),
        "role": db_user.role,
        "name": db_user.name,
    })

    return {
        "access_token": token,
        "token_type": "bearer",
        "user": UserOut.model_validate(db_user),
    }

@router.get("/me", response_model=UserOut)
def get_current_user_data(current_user: User = Depends(get_current_user)):
    """Devuelve los datos del usuario logueado"""
    return current_user

@router.put("/user", response_model=UserOut)
def update_user_settings(
    payload: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Nombre, país e icono del perfil"""
    for field, value in payload.model_dump(exclude_unset=True).items():
        if field == "name" and value is None:
            continue
        setattr(current_user, field, value)

    db.commit()
    db.refresh(current_user)
    return current_user

@router.put("/user/password")
def change_password(
    payload: PasswordChange,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not verify_password(payload.current_password, current_user.hashed_password):
        raise HTTPException(status_code=400, detail="La contraseña actual no es correcta")
    if payload.new_password != payload.new_password_confirmation:
        raise HTTPException(status_code=400, detail="Las contraseñas no coinciden")

    current_user.hashed_password = hash_password(payload.new_password)
    db.commit()
    return {"message": "Contraseña actualizada"}
