"""
Division seed data.

The seed file is a JSON list of division records:
  [{"id": "...", "name": "...", "code": "...", "email": "...",
    "boundary": [[lng, lat], ...],
    "officers": [{"id": "...", "name": "...", "phone": "...",
                  "alternate_phone": "...", "is_active": true}]}]
"""

import json
import logging
import os
from typing import List

from app.models.division import Division

logger = logging.getLogger(__name__)


def load_divisions(path: str) -> List[Division]:
    with open(path, "r", encoding="utf-8") as f:
        records = json.load(f)
    divisions = [Division(**record) for record in records]
    logger.info(f"Loaded {len(divisions)} division(s) from {path}")
    return divisions


def load_divisions_if_present(path: str) -> List[Division]:
    if not path or not os.path.exists(path):
        return []
    try:
        return load_divisions(path)
    except (OSError, ValueError) as e:
        logger.warning(f"Division seed file {path} could not be loaded: {e}")
        return []
