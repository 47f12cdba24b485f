from __future__ import annotations

from fastapi import Request

from enrollment_service.services.data_manager import DataManager


def get_data_manager(request: Request) -> DataManager:
    """The DataManager built by create_app(), stored on app.state."""
    return request.app.state.data_manager
