"""External metadata provider clients."""

from revyou.infrastructure.integrations.deezer_client import DeezerClient
from revyou.infrastructure.integrations.itunes_client import ITunesClient

__all__ = ["DeezerClient", "ITunesClient"]
