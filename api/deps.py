from fastapi import Request

from config.settings import AppSettings
from persistence.users import UserStore
from registration.session import SessionRegistry


def get_settings(request: Request) -> AppSettings:
    return request.app.state.settings


def get_user_store(request: Request) -> UserStore:
    return request.app.state.user_store


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.registry
