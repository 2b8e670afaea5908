# quotelink/routers/health.py
from fastapi import APIRouter, Depends, HTTPException

from ..deps import Services, get_services

router = APIRouter(tags=["health"])


@router.get("/")
def root():
    return {"ok": True, "service": "quotelink-api"}


@router.get("/health")
def health():
    return {"ok": True}


@router.get("/health/db")
def health_db(services: Services = Depends(get_services)):
    """Ping the data store with the service role client."""
    try:
        services.db.table("quotes").select("id").limit(1).execute()
    except Exception as e:
        raise HTTPException(status_code=503, detail=f"DB check failed: {e}")
    return {"ok": True, "db": "up"}
