# quotelink/routers/auth.py
from fastapi import APIRouter, Depends

from .. import auth
from ..deps import Services, get_services, get_user_id
from ..models import LoginIn, SignupIn

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup")
def signup(payload: SignupIn, services: Services = Depends(get_services)):
    return auth.signup(
        services.identity,
        services.db,
        services.settings,
        email=payload.email,
        password=payload.password,
        business_name=payload.business_name,
    )


@router.post("/login")
def login(payload: LoginIn, services: Services = Depends(get_services)):
    return auth.login(services.identity, services.settings, email=payload.email, password=payload.password)


@router.get("/user")
def get_user(user_id: str = Depends(get_user_id), services: Services = Depends(get_services)):
    return {"profile": auth.get_profile(services.db, user_id)}
