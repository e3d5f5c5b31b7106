"""
Callback router initialization and setup.
One sub-router per external integration, mounted at the integration's prefix.
"""
from fastapi import APIRouter
from . import midtrans, mileapp, shoptree

callback_router = APIRouter()

callback_router.include_router(
    midtrans.router,
    prefix="/midtrans",
    tags=["midtrans"]
)

callback_router.include_router(
    mileapp.router,
    prefix="/mileapp",
    tags=["mileapp"]
)

callback_router.include_router(
    shoptree.router,
    prefix="/shoptree",
    tags=["shoptree"]
)
