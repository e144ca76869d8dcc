from fastapi import APIRouter

from paws.web.routers import auth, practice, usage


def setup_routers() -> APIRouter:
    router = APIRouter()
    router.include_router(auth.router)
    router.include_router(usage.router)
    router.include_router(practice.router)
    return router


__all__ = ["setup_routers"]
