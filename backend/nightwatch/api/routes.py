from fastapi import APIRouter
from nightwatch.api import bookings, recurring_assignments, schedule, shifts, users, utils

api_router = APIRouter()

# Публичный healthcheck
api_router.include_router(utils.router)

# Роутеры участников
api_router.include_router(users.router)
api_router.include_router(schedule.router)
api_router.include_router(shifts.router)
api_router.include_router(bookings.router)
api_router.include_router(recurring_assignments.router)

# Роутеры администратора
api_router.include_router(schedule.admin_router)
api_router.include_router(shifts.admin_router)
api_router.include_router(bookings.admin_router)
api_router.include_router(recurring_assignments.admin_router)
