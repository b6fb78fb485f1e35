"""
Gestionnaires d'exceptions utilisés par la factory.
- Erreurs métier (CommerceError): {"detail": ..., "code": ...}
- Validation de requête (pydantic): 400 plutôt que 422
- Autres HTTPException: {"detail": ...}
"""
from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from gymstore.errors import CommerceError

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(CommerceError)
    async def commerce_error(request: Request, exc: CommerceError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail, "code": exc.code})

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"detail": jsonable_encoder(exc.errors()), "code": "validation_error"},
        )

    @app.exception_handler(HTTPException)
    async def http_error(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=getattr(exc, "headers", None))
