from .base import ProviderAdapter
from .gog import GogClient
from .igdb import IgdbClient
from .prowlarr import ProwlarrClient
from .steam import SteamClient

__all__ = [
    "GogClient",
    "IgdbClient",
    "ProviderAdapter",
    "ProwlarrClient",
    "SteamClient",
]
