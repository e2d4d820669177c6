from fastapi import Request

from .config import Settings
from .services.anime_service import AnimeService


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_anime_service(request: Request) -> AnimeService:
    return AnimeService(request.app.state.store, request.app.state.job_runner)
