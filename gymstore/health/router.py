from fastapi import APIRouter, Request

router = APIRouter(prefix="/health", tags=["Health"])

@router.get("")
def health_root(request: Request):
    return {"ok": True, "rateLimit": bool(getattr(request.app.state, "rate_limit_enabled", False))}
