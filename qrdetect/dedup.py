from typing import List

from .models import Quad

# Max per-axis corner distance (px) for two detections to count as one symbol
DUPLICATE_EPS = 10.0


def is_duplicate(accepted: Quad, candidate: Quad, eps: float = DUPLICATE_EPS) -> bool:
	# Only the first corner pair decides; see DESIGN.md (open question)
	a, c = accepted.points[0], candidate.points[0]
	return abs(a.x - c.x) < eps and abs(a.y - c.y) < eps


class Deduplicator:
	"""Drops decodes whose quad lands on an already admitted one.

	Quads must be in original-image coordinates. One instance per image.
	"""

	def __init__(self, eps: float = DUPLICATE_EPS):
		self.eps = eps
		self.accepted: List[Quad] = []

	def admit(self, quad: Quad) -> bool:
		for prev in self.accepted:
			if is_duplicate(prev, quad, self.eps):
				return False
		self.accepted.append(quad)
		return True
