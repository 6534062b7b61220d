"""CentroBook API application."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from centrobook.core.config import settings
from centrobook.routes import centers, courts, pricing, reservations


app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    docs_url=f"{settings.api_prefix}/docs",
    openapi_url=f"{settings.api_prefix}/openapi.json",
)

# CORS - permissive in dev, lock down in production
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.debug else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount routes
app.include_router(centers.router, prefix=settings.api_prefix)
app.include_router(courts.router, prefix=settings.api_prefix)
app.include_router(pricing.router, prefix=settings.api_prefix)
app.include_router(reservations.router, prefix=settings.api_prefix)


@app.get("/health")
async def health():
    return {"status": "ok", "app": settings.app_name}
