# dfir_fat12: a FAT12 image parser for digital forensics & incident response
# (c) Maxim Suhanov
#
# This module defines exceptions raised while parsing a FAT12 image.

class FileSystemException(Exception):
	"""This is a top-level exception for this package."""

	def __init__(self, value):
		self._value = value

	def __str__(self):
		return repr(self._value)

class CorruptImageException(FileSystemException):
	"""This exception is raised when the image is too short or the boot sector signature is invalid."""

	pass

class InvalidGeometryException(FileSystemException):
	"""This exception is raised when fields of the BIOS parameter block make no sense."""

	pass

class TruncatedImageException(FileSystemException):
	"""This exception is raised when the image is shorter than the geometry implies."""

	pass

class FileAllocationTableException(FileSystemException):
	"""This exception is raised when something is wrong with the file allocation table (FAT)."""

	pass

class IndexOutOfRangeException(FileAllocationTableException):
	"""This exception is raised when a FAT entry past the end of the table is requested."""

	pass

class CorruptChainException(FileAllocationTableException):
	"""This exception is raised when a cluster chain contains a bad cluster, a loop or an invalid link."""

	pass

class CorruptDirectoryException(FileSystemException):
	"""This exception is raised when a directory is self-referential or malformed."""

	pass

class CorruptEntryException(FileSystemException):
	"""This exception is raised when a directory entry points to invalid data."""

	pass
