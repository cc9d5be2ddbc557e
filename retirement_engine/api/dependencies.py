"""Dependency injection for FastAPI endpoints"""

from fastapi import Request

from retirement_engine.domain.engine_config import EngineConfig, default_engine_config


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_engine_config() -> EngineConfig:
    """Provide the process-wide engine configuration"""
    return default_engine_config()
