"""
ASGI entrypoint: expose `app` pour les process managers / déploiements.

- En production, un process manager (ex: gunicorn avec workers uvicorn) importe `gymstore.asgi:app`.
- Toute la configuration FastAPI est centralisée dans gymstore.app.
"""

from gymstore.app import app

if __name__ == "__main__":
    import os
    import uvicorn
    uvicorn.run(
        "gymstore.asgi:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,
    )
