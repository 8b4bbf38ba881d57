from dataclasses import dataclass
from typing import Dict, Optional, Protocol, Sequence, Tuple, Union
import numpy as np
import supervision as sv


@dataclass(frozen=True)
class Rect:
    """
    Axis-aligned rectangle.

    Edges are kept as given: a crop-space rect built from the model's box
    permutation may have ``top > bottom``. Use ``sorted()`` for the normalized form.
    """

    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        return abs(self.right - self.left)

    @property
    def height(self) -> float:
        return abs(self.bottom - self.top)

    def sorted(self) -> "Rect":
        return Rect(
            min(self.left, self.right),
            min(self.top, self.bottom),
            max(self.left, self.right),
            max(self.top, self.bottom),
        )

    def to_xyxy(self) -> Tuple[float, float, float, float]:
        r = self.sorted()
        return (r.left, r.top, r.right, r.bottom)

    def to_bbox(self) -> Dict[str, int]:
        x_min, y_min, x_max, y_max = self.to_xyxy()
        return {"x_min": int(x_min), "y_min": int(y_min), "x_max": int(x_max), "y_max": int(y_max)}


class RawDetectionBatch:
    """
    Raw output tensors of a single-shot detector for one frame.

    ``locations`` holds ``capacity * 4`` floats, each box encoded as
    ``[top, left, bottom, right]`` normalized to the square model input.
    The arrays are copied and made read-only on construction.
    """

    BOX_SIZE = 4

    def __init__(
        self,
        locations: Union[Sequence[float], np.ndarray],
        scores: Union[Sequence[float], np.ndarray],
        class_ids: Optional[Union[Sequence[float], np.ndarray]] = None,
        count: Optional[int] = None,
    ):
        self.locations = self._frozen(locations)
        self.scores = self._frozen(scores)
        self.class_ids = self._frozen(class_ids) if class_ids is not None else None
        self.count = int(count) if count is not None else None

    @staticmethod
    def _frozen(values) -> np.ndarray:
        array = np.array(values, dtype=np.float64).reshape(-1)
        array.setflags(write=False)
        return array

    @property
    def capacity(self) -> int:
        """Number of anchor slots (N)."""
        return int(self.scores.shape[0])

    def box(self, index: int) -> np.ndarray:
        offset = index * self.BOX_SIZE
        return self.locations[offset:offset + self.BOX_SIZE]

    def class_id(self, index: int) -> Optional[int]:
        if self.class_ids is None or index >= self.class_ids.shape[0]:
            return None
        return int(self.class_ids[index])

    def __len__(self) -> int:
        return self.capacity

    def __repr__(self) -> str:
        return f"RawDetectionBatch(capacity={self.capacity}, count={self.count})"


@dataclass(frozen=True)
class Detection:
    """A thresholded detection in frame (preview) coordinates."""

    id: str
    label: str
    confidence: float
    bounding_box: Rect
    class_id: Optional[int] = None


@dataclass(frozen=True)
class Track:
    """A renderable tracked entity. Boxes are always in frame coordinates."""

    track_id: str
    color: sv.Color
    current_box: Rect
    last_seen_timestamp: int
    label: str
    confidence: float = 0.0


class LabelProvider(Protocol):
    """Maps an anchor index (and optional class id) to a display label."""
    def __call__(self, index: int, class_id: Optional[int] = None) -> str: ...


class InferenceFunction(Protocol):
    """Opaque model call from a cropped image to raw tensors."""
    def __call__(self, image: np.ndarray) -> RawDetectionBatch: ...
