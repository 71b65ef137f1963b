"""API-specific dependencies."""

# Re-export common dependencies
from .dependencies import (
    ServiceContainer,
    get_container,
    get_ingestion_service,
    get_material_service,
    get_orchestrator,
    get_response_cache,
    get_settings_dependency,
    get_vector_store,
)

__all__ = [
    "ServiceContainer",
    "get_container",
    "get_ingestion_service",
    "get_material_service",
    "get_orchestrator",
    "get_response_cache",
    "get_settings_dependency",
    "get_vector_store",
]
