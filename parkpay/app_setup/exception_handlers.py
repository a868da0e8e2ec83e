"""
Gestionnaires d'exceptions: toutes les erreurs API ont la forme {success: false, error, code?}.
- PaymentError: statut et code portés par l'exception, message affiché tel quel par le front
- RequestValidationError: 400 avec le premier message de validation (corps mal formé)
- HTTPException: statut conservé, detail exposé dans 'error'
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from parkpay.payments.errors import PaymentError

_IGNORED_LOC = ("body", "query", "path", "header")

def first_validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Requête invalide"
    err = errors[0]
    msg = str(err.get("msg") or "Valeur invalide")
    if msg.startswith("Value error, "):
        msg = msg[len("Value error, "):]
    field = ".".join(str(p) for p in err.get("loc", ()) if p not in _IGNORED_LOC)
    return f"{field}: {msg}" if field else msg

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(PaymentError)
    async def payment_error_handler(request: Request, exc: PaymentError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.message, "code": exc.code},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": first_validation_message(exc), "code": "validation_error"},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.detail},
            headers=getattr(exc, "headers", None),
        )
