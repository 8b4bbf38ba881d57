"""
Label sources for decoded detections.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from ..utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class IndexLabelProvider:
    """Placeholder labels derived from the anchor index: ``" 1"``, ``" 2"``, ..."""

    def __call__(self, index: int, class_id: Optional[int] = None) -> str:
        return " " + str(index + 1)


class LabelMap:
    """
    Class-id to name lookup.

    Falls back to the index placeholder when a detection has no class id or
    the id is outside the map.
    """

    BACKGROUND = "???"

    def __init__(self, labels: List[str]):
        self._labels: Dict[int, str] = {i: label for i, label in enumerate(labels)}
        self._fallback = IndexLabelProvider()

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "LabelMap":
        """
        Load a ``labelmap.txt`` with one label per line.

        A leading ``???`` row (the background class used by SSD label maps) is
        dropped so that class id 0 is the first real class.

        Raises:
            ConfigurationError: If the file does not exist or is empty
        """
        path = Path(path)
        if not path.exists():
            raise ConfigurationError("labels_file", str(path), "File not found")

        with open(path, "r", encoding="utf-8") as f:
            labels = [line.strip() for line in f if line.strip()]

        if labels and labels[0] == cls.BACKGROUND:
            labels = labels[1:]
        if not labels:
            raise ConfigurationError("labels_file", str(path), "No labels in file")

        logger.info(f"Loaded {len(labels)} labels from {path}")
        return cls(labels)

    def __len__(self) -> int:
        return len(self._labels)

    def __call__(self, index: int, class_id: Optional[int] = None) -> str:
        if class_id is None or class_id not in self._labels:
            return self._fallback(index, class_id)
        return self._labels[class_id]
