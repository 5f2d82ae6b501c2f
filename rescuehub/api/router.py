"""Central router that includes all sub-routers."""

from fastapi import APIRouter

from rescuehub.api.auth import router as auth_router
from rescuehub.api.rescue import router as rescue_router
from rescuehub.api.dogs import router as dogs_router
from rescuehub.api.rescued_dogs import router as rescued_dogs_router
from rescuehub.api.adoptions import router as adoptions_router
from rescuehub.api.admin import router as admin_router

api_router = APIRouter()
api_router.include_router(auth_router)
api_router.include_router(rescue_router)
api_router.include_router(dogs_router)
api_router.include_router(rescued_dogs_router)
api_router.include_router(adoptions_router)
api_router.include_router(admin_router)
