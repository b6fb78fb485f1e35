from fastapi import Request, Response, HTTPException
import os
import time
import hashlib
from gymstore.utils.security import COOKIE_NAME

def _user_key_from_request(req: Request) -> str:
    # Priorité: token (hashé) puis IP
    auth_header = req.headers.get("Authorization", "")
    token = auth_header[7:].strip() if auth_header.startswith("Bearer ") else req.cookies.get(COOKIE_NAME)
    path = req.url.path
    if token:
        h = hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]
        return f"user:{h}:{path}"
    ip = req.client.host if req.client else "local"
    return f"ip:{ip}:{path}"

def optional_rate_limit(times: int, seconds: int):
    """
    Dépendance de rate limiting.
    - LOCAL_RATE_LIMIT_FALLBACK=1: fenêtre glissante en mémoire (dev).
    - Sinon fastapi-limiter (Redis), sauf si désactivé par le lifespan.
    """
    async def _dep(request: Request, response: Response):
        if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
            now = time.time()
            key = _user_key_from_request(request)
            store = getattr(request.app.state, "_rl_store", {})
            hits = [t for t in store.get(key, []) if now - t < seconds]
            if len(hits) >= times:
                raise HTTPException(status_code=429, detail="Too Many Requests")
            hits.append(now)
            store[key] = hits
            request.app.state._rl_store = store
            return

        # Respecter le flag global posé par le lifespan
        if not getattr(request.app.state, "rate_limit_enabled", False):
            return

        from fastapi_limiter.depends import RateLimiter

        async def _identifier(req: Request) -> str:
            return _user_key_from_request(req)
        return await RateLimiter(times=times, seconds=seconds, identifier=_identifier)(request, response)
    return _dep
