"""Unauthenticated discovery and health endpoints."""
from __future__ import annotations

from fastapi import APIRouter

router = APIRouter()

ENDPOINTS = [
    {"description": "Gets a list of all images owned by the authenticated user.", "endpoint": "GET /images"},
    {"description": "Gets one image owned by the authenticated user.", "endpoint": "GET /images/:id"},
    {"description": "Create an image.", "endpoint": "POST /images"},
    {"description": "Edits an image.", "endpoint": "PUT /images/:id"},
    {"description": "Partially edits an image.", "endpoint": "PATCH /images/:id"},
    {"description": "Deletes an image.", "endpoint": "DELETE /images/:id"},
]


@router.get("/")
async def index():
    return {"message": "Welcome to this API!", "endpoints": ENDPOINTS}


@router.get("/healthz")
async def healthz():
    return {"status": "ok"}
