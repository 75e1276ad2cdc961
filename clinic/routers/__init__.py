# clinic/routers/__init__.py
from . import appointments, auth, health, payments, schedule

__all__ = ["appointments", "auth", "health", "payments", "schedule"]
