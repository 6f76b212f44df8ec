"""Health and readiness endpoints."""
from datetime import datetime

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from apps.backend.deps import get_db
from apps.backend.utils.dates import iso

router = APIRouter()


@router.get("/api/health")
def health(request: Request):
    return {
        "ok": True,
        "timestamp": iso(datetime.utcnow()),
        "origin": request.headers.get("origin"),
        "userAgent": request.headers.get("user-agent"),
    }


@router.get("/api/test-extension")
def test_extension(request: Request):
    return {
        "message": "Extension connection successful",
        "timestamp": iso(datetime.utcnow()),
        "origin": request.headers.get("origin"),
    }


@router.get("/ready")
def ready(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        return JSONResponse({"status": "error", "detail": str(e)}, status_code=503)
    return {"status": "ok"}
