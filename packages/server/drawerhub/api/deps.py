"""Shared FastAPI dependencies for the v1 routers."""

from __future__ import annotations

from fastapi import Request

from drawerhub.core.config import Settings


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
