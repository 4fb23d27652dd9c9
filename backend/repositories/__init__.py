from .places import PlacesRepository
from . import models

__all__ = ["PlacesRepository", "models"]
