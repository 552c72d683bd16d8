from enum import IntEnum


class ErrorCode(IntEnum):
	OK = 0
	INVALID_HANDLE = -1
	INVALID_INDEX = -2
	BUFFER_TOO_SMALL = -3
	DECODE_FAILED = -4
	INVALID_ARGUMENT = -5
	OUT_OF_MEMORY = -6


class QrcodeError(Exception):
	"""Base class for errors surfaced at the API boundary."""
	code = ErrorCode.INVALID_ARGUMENT

	def __init__(self, message: str = ""):
		super().__init__(message or self.code.name.lower().replace("_", " "))


class InvalidHandleError(QrcodeError):
	code = ErrorCode.INVALID_HANDLE


class InvalidIndexError(QrcodeError):
	code = ErrorCode.INVALID_INDEX


class BufferTooSmallError(QrcodeError):
	code = ErrorCode.BUFFER_TOO_SMALL

	def __init__(self, required_size: int, provided_size: int = 0):
		self.required_size = required_size
		self.provided_size = provided_size
		super().__init__(f"buffer too small: need {required_size}, got {provided_size}")


class DecodeFailedError(QrcodeError):
	code = ErrorCode.DECODE_FAILED


class InvalidArgumentError(QrcodeError):
	code = ErrorCode.INVALID_ARGUMENT


class OutOfMemoryError(QrcodeError):
	code = ErrorCode.OUT_OF_MEMORY


class ModelLoadError(QrcodeError):
	"""Model weights missing or unreadable while strict loading is requested."""
	code = ErrorCode.INVALID_ARGUMENT
