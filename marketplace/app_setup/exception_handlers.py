"""
Gestionnaires d'exceptions.
- CheckoutError -> {"error": <raison>, "message": <texte>} avec en-têtes CORS si Origin présent.
- Les HTTPException ordinaires gardent le rendu FastAPI {"detail": ...}.
"""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from marketplace.payments.errors import CheckoutError
from marketplace.utils.origins import cors_headers

def register_exception_handlers(app: FastAPI) -> None:
    """Enregistre le handler des erreurs métier du tunnel de paiement."""
    @app.exception_handler(CheckoutError)
    async def checkout_error_handler(request: Request, exc: CheckoutError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.reason, "message": exc.message},
            headers=cors_headers(request.headers.get("origin")),
        )
