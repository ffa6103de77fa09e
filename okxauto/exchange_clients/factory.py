"""
Exchange Client Factory

Builds the exchange gateway from process settings.
"""

from okxauto.config import Settings
from okxauto.exceptions import ConfigurationError
from okxauto.exchange_clients.base import ExchangeClient
from okxauto.exchange_clients.okx_client import OKXClient


def create_exchange_client(settings: Settings) -> ExchangeClient:
    """
    Create the OKX gateway.

    Raises:
        ConfigurationError: if credentials are missing or the API mode is unknown
    """
    if settings.okx_api_mode not in ("simulation", "live"):
        raise ConfigurationError(f"Unknown OKX API mode: {settings.okx_api_mode}")

    missing = [
        name
        for name, value in (
            ("okx_api_key", settings.okx_api_key),
            ("okx_api_secret", settings.okx_api_secret),
            ("okx_passphrase", settings.okx_passphrase),
        )
        if not value
    ]
    if missing:
        raise ConfigurationError(f"Missing OKX credentials: {', '.join(missing)}")

    return OKXClient(
        api_key=settings.okx_api_key,
        api_secret=settings.okx_api_secret,
        passphrase=settings.okx_passphrase,
        mode=settings.okx_api_mode,
    )
