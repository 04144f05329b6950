"""wikipulse - rolling picture of actively edited wiki pages."""

__version__ = "0.1.0"

from .collection import WikiCollection
from .config import CollectionConfig, load_config
from .models import PageRecord

__all__ = [
    "__version__",
    "CollectionConfig",
    "PageRecord",
    "WikiCollection",
    "load_config",
]
