"""Core functionality for the Sketchy gallery service.

Architecture Overview
---------------------
The core is organised as small components behind abstract interfaces, wired
together once by :func:`~sketchy.core.services.build_services`:

1. **Configuration** (config.py): Pydantic Settings, ``SKETCHY_`` prefix.
2. **Generation** (prompt_expander.py, image_producer.py, thumbnails.py,
   generation.py): prompt expansion, live or mock image production,
   thumbnail derivation and the persisting pipeline.
3. **Persistence** (artifact_store.py, metadata_index.py): local or remote
   storage of image bytes and generation records.
4. **Read side and maintenance** (gallery.py, admin.py): gallery
   reconstruction and admin deletions.
"""

from sketchy.core.config import SketchyConfig, config
from sketchy.core.records import Artifact, GalleryItem, GalleryView, GenerationRecord
from sketchy.core.services import Services, build_services

__all__ = [
    "Artifact",
    "GalleryItem",
    "GalleryView",
    "GenerationRecord",
    "Services",
    "SketchyConfig",
    "build_services",
    "config",
]
