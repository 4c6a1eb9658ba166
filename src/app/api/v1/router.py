# src/app/api/v1/router.py
from fastapi import APIRouter

from app.api.v1 import search

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(search.router)
