from . import catalog, screens

__all__ = ["catalog", "screens"]
