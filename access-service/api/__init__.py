from fastapi import APIRouter

from api.access.routes import router as access_router

api_router = APIRouter()

api_router.include_router(access_router, prefix="/access", tags=["access"])


@api_router.get("/health", tags=["health"])
def health():
    return {"status": "ok"}
