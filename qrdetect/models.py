from dataclasses import dataclass, field
from typing import Iterable, List, Tuple


@dataclass(frozen=True)
class Point:
	x: float
	y: float


@dataclass(frozen=True)
class Quad:
	"""Four corners in TL, TR, BR, BL order.

	A quad carries no frame information itself; callers track whether it is in
	detector, cropped or original-image coordinates.
	"""
	points: Tuple[Point, Point, Point, Point]

	def __post_init__(self):
		if len(self.points) != 4:
			raise ValueError(f"Quad needs exactly 4 points, got {len(self.points)}")

	@classmethod
	def from_xy(cls, coords: Iterable[Tuple[float, float]]) -> "Quad":
		return cls(tuple(Point(float(x), float(y)) for x, y in coords))  # type: ignore[arg-type]

	@classmethod
	def rectangle(cls, x0: float, y0: float, x1: float, y1: float) -> "Quad":
		return cls.from_xy([(x0, y0), (x1, y0), (x1, y1), (x0, y1)])

	def scaled(self, factor: float) -> "Quad":
		"""Divide every coordinate by `factor` (undo a resample at that scale)."""
		return Quad.from_xy((p.x / factor, p.y / factor) for p in self.points)

	def as_tuples(self) -> List[Tuple[float, float]]:
		return [(p.x, p.y) for p in self.points]

	def flatten(self) -> List[float]:
		"""x0, y0, x1, y1, ... as used by the result points accessor."""
		out: List[float] = []
		for p in self.points:
			out.extend((p.x, p.y))
		return out


@dataclass
class DetectionCandidate:
	quad: Quad
	score: float = 1.0


@dataclass
class DecodedSymbol:
	# Points are in the frame of the bitmap handed to the decoder
	text: str
	points: List[Tuple[float, float]] = field(default_factory=list)
	decoder: str = "zxing-cpp"


@dataclass
class DecodeRecord:
	text: str
	# Corners in original-image coordinates
	quad: Quad

	@property
	def payload(self) -> bytes:
		return self.text.encode("utf-8")

	@property
	def points(self) -> List[Tuple[float, float]]:
		return self.quad.as_tuples()
