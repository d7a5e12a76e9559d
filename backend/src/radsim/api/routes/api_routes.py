from fastapi import APIRouter

from radsim.api.routes import auth_router, case_routes, session_routes, user_router

api_router = APIRouter()
api_router.include_router(auth_router.router)
api_router.include_router(user_router.router)
api_router.include_router(case_routes.router)
api_router.include_router(session_routes.router)
