from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.orm import Session

from fundbridge.core.chains import SUPPORTED_CHAINS
from fundbridge.db.session import get_db

router = APIRouter()


@router.get("/health")
def health(request: Request, db: Session = Depends(get_db)):
    rid = getattr(request.state, "request_id", None)
    db.execute(text("SELECT 1"))
    return {
        "status": "ok",
        "request_id": rid,
        "supported_chains": sorted(SUPPORTED_CHAINS),
    }
