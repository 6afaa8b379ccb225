from fastapi import APIRouter
from .v1 import blueprints, plugins

api_router = APIRouter(prefix="/api", tags=["blueprint-compiler"])

api_router.include_router(plugins.router, prefix="/v1", tags=["plugins"])
api_router.include_router(blueprints.router, prefix="/v1", tags=["blueprints"])

@api_router.get("/")
def read_root():
    return {"message": "dappforge blueprint compiler is running"}
