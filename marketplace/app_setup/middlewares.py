"""
Middlewares transverses de l'application.
- register_security_middleware: en-têtes de sécurité d'une API JSON (pas de HTML servi).
Pas de CORSMiddleware: les routes checkout gèrent elles-mêmes l'allow-list et la pré-vérification OPTIONS.
"""
from fastapi import FastAPI, Request

from marketplace.config import APP_ENV

def register_security_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)

        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        response.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
        if APP_ENV == "production":
            response.headers.setdefault("Strict-Transport-Security", "max-age=63072000; includeSubDomains; preload")
        # /docs (Swagger) charge ses assets depuis un CDN
        if not request.url.path.startswith(("/docs", "/redoc")):
            response.headers.setdefault("Content-Security-Policy", "default-src 'none'; frame-ancestors 'none'")
        return response
