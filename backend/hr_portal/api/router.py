from fastapi import APIRouter

from hr_portal.api.balances import employee_balance_router
from hr_portal.api.renewals import renewals_router
from hr_portal.api.requests import manager_actions_router, requests_router

api_router = APIRouter()
api_router.include_router(requests_router)
api_router.include_router(manager_actions_router)
api_router.include_router(employee_balance_router)
api_router.include_router(renewals_router)
