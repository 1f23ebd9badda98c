from fastapi import APIRouter, Depends

from tabsy.api.deps import get_google_auth
from tabsy.api.responses import ok
from tabsy.services.google_auth import GoogleAuth
from tabsy.timeutil import utcnow

router = APIRouter(tags=["Health"])

SERVICE_NAME = "Tabsy Backend"


@router.get("/health")
def health(auth: GoogleAuth = Depends(get_google_auth)):
    return ok({
        "status": "healthy",
        "timestamp": utcnow().isoformat(),
        "service": SERVICE_NAME,
        "googleAuth": "authenticated" if auth.is_authenticated() else "not authenticated"
    })
