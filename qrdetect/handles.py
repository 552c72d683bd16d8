"""
Handle registry

Maps opaque integer keys to owned objects so callers across a boundary
(ctypes, RPC, another language) never hold Python references directly.
Keys come from a counter that is bit-rotated and XOR-masked so they do not
look like small sequential ids.
"""

import threading
import time
from contextlib import contextmanager
from typing import Dict, Generic, Iterator, TypeVar

from .errors import InvalidHandleError

T = TypeVar("T")

KEY_BITS = 64
KEY_MASK = (1 << KEY_BITS) - 1
ROTATE = 23
XOR_KEY = 0x9E3779B97F4A7C15


def _rotl(value: int, shift: int, bits: int = KEY_BITS) -> int:
	shift %= bits
	value &= (1 << bits) - 1
	if shift == 0:
		return value
	return ((value << shift) | (value >> (bits - shift))) & ((1 << bits) - 1)


def scramble_key(raw: int) -> int:
	return _rotl(raw, ROTATE) ^ XOR_KEY


class ReadWriteLock:
	"""Many readers or one writer. Writers wait for active readers to drain."""

	def __init__(self):
		self._cond = threading.Condition(threading.Lock())
		self._readers = 0
		self._writer = False

	@contextmanager
	def read(self) -> Iterator[None]:
		with self._cond:
			while self._writer:
				self._cond.wait()
			self._readers += 1
		try:
			yield
		finally:
			with self._cond:
				self._readers -= 1
				if self._readers == 0:
					self._cond.notify_all()

	@contextmanager
	def write(self) -> Iterator[None]:
		with self._cond:
			while self._writer or self._readers:
				self._cond.wait()
			self._writer = True
		try:
			yield
		finally:
			with self._cond:
				self._writer = False
				self._cond.notify_all()


class HandleRegistry(Generic[T]):
	def __init__(self, name: str = "handle"):
		self.name = name
		self._items: Dict[int, T] = {}
		self._lock = ReadWriteLock()
		self._counter_lock = threading.Lock()
		self._counter = (time.monotonic_ns() // 1000) & KEY_MASK

	def _next_key(self) -> int:
		with self._counter_lock:
			self._counter = (self._counter + 1) & KEY_MASK
			raw = self._counter
		return scramble_key(raw)

	def create(self, item: T) -> int:
		while True:
			key = self._next_key()
			if key == 0:
				continue
			with self._lock.write():
				if key not in self._items:
					self._items[key] = item
					return key

	def get(self, key: int) -> T:
		with self._lock.read():
			try:
				return self._items[key]
			except (KeyError, TypeError):
				raise InvalidHandleError(f"unknown {self.name} handle {key!r}") from None

	def release(self, key: int) -> bool:
		with self._lock.write():
			try:
				return self._items.pop(key, None) is not None
			except TypeError:
				return False

	def __contains__(self, key: object) -> bool:
		with self._lock.read():
			try:
				return key in self._items
			except TypeError:
				return False

	def __len__(self) -> int:
		with self._lock.read():
			return len(self._items)
