from .settings import BaryonSettings, get_settings, reload_settings
from .logging import setup_logging, get_logger, route_to_stdlib

__all__ = ['BaryonSettings', 'get_settings', 'reload_settings', 'setup_logging', 'get_logger', 'route_to_stdlib']
