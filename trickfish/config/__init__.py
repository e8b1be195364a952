from trickfish.config.settings import Settings, settings, get_bool_env

__all__ = ["Settings", "settings", "get_bool_env"]
