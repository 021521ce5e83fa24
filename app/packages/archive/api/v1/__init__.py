"""API 汇总路由：统一挂载所有子路由。"""

from fastapi import APIRouter

from app.packages.archive.api.v1.endpoints import auth, config, data, folders, pages, showcase, tags

api_router = APIRouter()
api_router.include_router(showcase.router)
api_router.include_router(auth.router)
api_router.include_router(pages.router)
api_router.include_router(folders.router)
api_router.include_router(tags.router)
api_router.include_router(data.router)
api_router.include_router(config.router)
