"""
Request dependencies: settings and exchange client live on app.state (set by create_app).
"""
from fastapi import Request

from oauth_service.config import Settings
from oauth_service.exchange import TokenExchangeClient


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_exchanger(request: Request) -> TokenExchangeClient:
    return request.app.state.exchanger
