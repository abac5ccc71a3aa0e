# sfa_portal/api/v1/api.py
from fastapi import APIRouter

from sfa_portal.api.v1.endpoints import auth, sfa_ids, beneficiary, functions, members, announcements, settings

api_router_v1 = APIRouter(prefix="/api/v1")

api_router_v1.include_router(auth.router, prefix="/auth")
api_router_v1.include_router(sfa_ids.router, prefix="/sfa-ids")
api_router_v1.include_router(beneficiary.router, prefix="/beneficiary")
api_router_v1.include_router(functions.router, prefix="/functions")
api_router_v1.include_router(members.router, prefix="/members")
api_router_v1.include_router(announcements.router, prefix="/announcements")
api_router_v1.include_router(settings.router, prefix="/settings")
