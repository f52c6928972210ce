"""Shared dependencies for API routes."""

from fastapi import Request

from services.runtime import Runtime


def get_runtime(request: Request) -> Runtime:
    return request.app.state.runtime
