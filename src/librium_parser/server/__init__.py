from .app import create_app
from .config import ServerConfig, load_server_config
from .service import ParseService

__all__ = [
    "ParseService",
    "ServerConfig",
    "create_app",
    "load_server_config",
]
