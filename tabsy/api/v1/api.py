from fastapi import APIRouter
from tabsy.api.v1.endpoints import health, auth, calendar, emails, tasks, agent

api_router = APIRouter(prefix="/api/v1")

# Include all endpoint routers
api_router.include_router(health.router)
api_router.include_router(auth.router)
api_router.include_router(calendar.router)
api_router.include_router(emails.router)
api_router.include_router(tasks.router)
api_router.include_router(agent.router)
